"""WebSocket feed adapter built on aiohttp."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import aiohttp

from dronetrack._redact import redact_for_log
from dronetrack.config import TrackerConfig
from dronetrack.exceptions import FeedError
from dronetrack.ingestion.batch import decode_payload
from dronetrack.ingestion.feed import ConnectionStatus, PayloadCallback, StatusCallback

_logger = logging.getLogger(__name__)


def _noop(_value: Any) -> None:
    return None


class WebSocketFeed:
    """Feed adapter reading JSON batches from a WebSocket endpoint.

    Runs a reconnect loop on the event loop: every dropped or failed
    connection is retried after ``reconnect_delay`` seconds until
    :meth:`stop` is called.
    """

    def __init__(
        self,
        url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        reconnect_delay: float = 2.0,
        heartbeat: float | None = 30.0,
    ) -> None:
        self._url = url
        self._external_session = session is not None
        self._http_session = session
        self._reconnect_delay = reconnect_delay
        self._heartbeat = heartbeat
        self._task: asyncio.Task[None] | None = None
        self._on_payload: PayloadCallback = _noop
        self._on_status: StatusCallback = _noop
        self._connections = 0

    @classmethod
    def from_config(cls, config: TrackerConfig, *, session: aiohttp.ClientSession | None = None) -> WebSocketFeed:
        return cls(
            config.feed_url,
            session=session,
            reconnect_delay=config.reconnect_delay,
            heartbeat=config.heartbeat,
        )

    @property
    def connections(self) -> int:
        """Number of successful connections so far."""
        return self._connections

    async def start(self, on_payload: PayloadCallback, on_status: StatusCallback) -> None:
        if self._task is not None:
            return
        self._on_payload = on_payload
        self._on_status = on_status
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        try:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        finally:
            if not self._external_session and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None
            self._on_status(ConnectionStatus.DISCONNECTED)

    async def _run(self) -> None:
        assert self._http_session is not None  # noqa: S101
        while True:
            self._on_status(ConnectionStatus.CONNECTING)
            try:
                async with self._http_session.ws_connect(self._url, heartbeat=self._heartbeat) as ws:
                    self._connections += 1
                    _logger.debug("Feed connected url=%s", self._url)
                    self._on_status(ConnectionStatus.CONNECTED)
                    async for msg in ws:
                        if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                            self._dispatch(msg.data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            _logger.warning("Feed connection error: %s", ws.exception())
                            break
                _logger.debug("Feed connection closed url=%s", self._url)
                self._on_status(ConnectionStatus.DISCONNECTED)
            except (aiohttp.ClientError, OSError, TimeoutError) as exc:
                _logger.warning("Feed connection to %s failed: %s", self._url, exc)
                self._on_status(ConnectionStatus.ERROR)
            await asyncio.sleep(self._reconnect_delay)

    def _dispatch(self, data: str | bytes) -> None:
        try:
            payload = decode_payload(data)
        except FeedError:
            _logger.debug("Dropping undecodable feed frame: %s", redact_for_log(data), exc_info=True)
            return
        try:
            self._on_payload(payload)
        except Exception:
            _logger.warning("Feed payload handler failed; frame dropped", exc_info=True)
