"""Async service wiring a feed, the periodic sweep and the tracker core."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from dronetrack.config import TrackerConfig
from dronetrack.ingestion.feed import Feed
from dronetrack.ingestion.mqtt import MqttFeed
from dronetrack.ingestion.websocket import WebSocketFeed
from dronetrack.render.reconciler import ReconcileResult
from dronetrack.render.surface import RenderSurface
from dronetrack.state.store import now_ms
from dronetrack.tracker import CountsCallback, SelectCallback, StatusCallback, TrackerCore

_logger = logging.getLogger(__name__)


def create_feed(config: TrackerConfig) -> Feed:
    """Build the feed adapter named by ``config.feed_kind``."""
    if config.feed_kind == "mqtt":
        return MqttFeed.from_config(config)
    return WebSocketFeed.from_config(config)


class TrackerService:
    """Runs a :class:`TrackerCore` against a live feed.

    Usage::

        async with TrackerService(surface, config=TrackerConfig.from_env()) as service:
            ...
            print(service.core.counts)

    Leaving the context cancels the sweep timer, stops the feed, and then
    removes every surface object the tracker created.
    """

    def __init__(
        self,
        surface: RenderSurface,
        *,
        config: TrackerConfig | None = None,
        feed: Feed | None = None,
        clock: Callable[[], int] = now_ms,
        on_counts: CountsCallback | None = None,
        on_select: SelectCallback | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._config = (config or TrackerConfig()).validate()
        self._core = TrackerCore(
            surface,
            config=self._config,
            clock=clock,
            on_counts=on_counts,
            on_select=on_select,
            on_status=on_status,
        )
        self._feed = feed
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def core(self) -> TrackerCore:
        return self._core

    @property
    def feed(self) -> Feed | None:
        return self._feed

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None

    async def __aenter__(self) -> TrackerService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._sweep_task is not None:
            return
        if self._feed is None:
            self._feed = create_feed(self._config)
        await self._feed.start(self._core.handle_payload, self._core.set_connection_status)
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        _logger.debug(
            "Tracker service started window=%sms sweep=%sms",
            self._config.stale_window_ms,
            self._config.effective_sweep_interval_ms,
        )

    async def stop(self) -> ReconcileResult:
        task = self._sweep_task
        self._sweep_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._feed is not None:
            try:
                await self._feed.stop()
            except Exception:
                _logger.debug("Feed stop failed", exc_info=True)
        return self._core.shutdown()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._core.seconds_until_sweep())
            try:
                self._core.tick()
            except Exception:
                _logger.exception("Eviction sweep failed")
