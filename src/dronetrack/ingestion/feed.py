"""Feed adapter interface shared by the MQTT and WebSocket adapters."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol


class ConnectionStatus(StrEnum):
    """Feed connectivity, surfaced for display only."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


PayloadCallback = Callable[[Any], None]
StatusCallback = Callable[[ConnectionStatus], None]


class Feed(Protocol):
    """Push subscription delivering decoded position batches.

    Adapters invoke *on_payload* and *on_status* on the event loop thread.
    Reconnects are handled inside the adapter and never reset tracker state.
    """

    async def start(self, on_payload: PayloadCallback, on_status: StatusCallback) -> None: ...

    async def stop(self) -> None: ...
