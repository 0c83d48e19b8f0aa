"""MQTT feed adapter.

A threaded paho-mqtt runtime subscribes to the position topic and hands each
decoded message to the asyncio loop with ``call_soon_threadsafe``, so the
tracker only ever runs on the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from dronetrack._redact import redact_for_log
from dronetrack.config import TrackerConfig
from dronetrack.exceptions import FeedError
from dronetrack.ingestion.batch import decode_payload
from dronetrack.ingestion.feed import ConnectionStatus, PayloadCallback, StatusCallback

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MqttFeedSettings:
    """Broker connection details for the position feed."""

    host: str
    port: int
    topic: str
    keepalive: int = 120
    tls: bool = False
    username: str | None = None
    password: str | None = None
    client_id: str = ""

    @classmethod
    def from_config(cls, config: TrackerConfig) -> MqttFeedSettings:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic=config.mqtt_topic,
            keepalive=config.mqtt_keepalive,
            tls=config.mqtt_tls,
            username=config.mqtt_username,
            password=config.mqtt_password,
            client_id=f"dronetrack_{secrets.token_hex(4)}",
        )


class MqttFeedRuntime:
    """Threaded paho-mqtt runtime that emits parsed batches onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        settings: MqttFeedSettings,
        on_payload: PayloadCallback,
        on_status: StatusCallback,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._settings = settings
        self._on_payload = on_payload
        self._on_status = on_status
        self._logger = logger or _logger
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self) -> None:
        """Start the network loop; paho keeps reconnecting in the background."""
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT feed start requested host=%s port=%s topic=%s client_id=%s",
            settings.host,
            settings.port,
            settings.topic,
            settings.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=30)

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        self._post_status(ConnectionStatus.CONNECTING)
        client.connect_async(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _post_status(self, status: ConnectionStatus) -> None:
        self._loop.call_soon_threadsafe(self._on_status, status)

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            self._post_status(ConnectionStatus.ERROR)
            return
        self._logger.debug("MQTT connected reason=%s; subscribing topic=%s", reason_code, self._settings.topic)
        client.subscribe(self._settings.topic, qos=0)
        self._post_status(ConnectionStatus.CONNECTED)

    def _on_message(self, _client: Any, _userdata: Any, msg: Any) -> None:
        try:
            payload = decode_payload(msg.payload)
        except FeedError:
            self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
            return
        self._logger.debug("Received PUBLISH topic=%s payload=%s", msg.topic, redact_for_log(payload))
        self._loop.call_soon_threadsafe(self._on_payload, payload)

    def _on_disconnect(
        self,
        _client: Any,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)
            self._post_status(ConnectionStatus.DISCONNECTED)


class MqttFeed:
    """Feed adapter subscribing to a broker topic."""

    def __init__(self, settings: MqttFeedSettings) -> None:
        self._settings = settings
        self._runtime: MqttFeedRuntime | None = None

    @classmethod
    def from_config(cls, config: TrackerConfig) -> MqttFeed:
        return cls(MqttFeedSettings.from_config(config))

    @property
    def runtime(self) -> MqttFeedRuntime | None:
        return self._runtime

    async def start(self, on_payload: PayloadCallback, on_status: StatusCallback) -> None:
        loop = asyncio.get_running_loop()
        runtime = MqttFeedRuntime(
            loop=loop,
            settings=self._settings,
            on_payload=on_payload,
            on_status=on_status,
        )
        try:
            await loop.run_in_executor(None, runtime.start)
        except (OSError, ValueError) as exc:
            _logger.warning("MQTT feed start failed: %s", exc)
            on_status(ConnectionStatus.ERROR)
            raise FeedError(f"MQTT feed start failed: {exc}", endpoint=self._settings.host) from exc
        self._runtime = runtime

    async def stop(self) -> None:
        runtime = self._runtime
        self._runtime = None
        if runtime is None:
            return
        try:
            await asyncio.get_running_loop().run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT feed stop failed", exc_info=True)
