"""Tracker configuration for dronetrack."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from dronetrack.exceptions import TrackerConfigError

FEED_KINDS = frozenset({"websocket", "mqtt"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    stale_window_ms : int
        Silence duration after which a track is forgotten.
    sweep_interval_ms : int or None
        Period of the eviction sweep. ``None`` means one third of
        ``stale_window_ms``, which bounds how long a stale track can
        outlive its window.
    feed_kind : str
        Which ingestion adapter to run, ``"websocket"`` or ``"mqtt"``.
    feed_url : str
        WebSocket endpoint delivering position batches.
    reconnect_delay : float
        Seconds to wait before reconnecting a dropped WebSocket feed.
    heartbeat : float
        WebSocket ping interval in seconds.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic carrying position batches.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect to the broker over TLS.
    mqtt_username : str or None
        Optional broker username.
    mqtt_password : str or None
        Optional broker password.
    strict_invariants : bool
        Raise :class:`~dronetrack.exceptions.InvariantViolation` when a
        journey breaks its invariants instead of silently dropping it.
    """

    stale_window_ms: int = 30_000
    sweep_interval_ms: int | None = None
    feed_kind: str = "websocket"
    feed_url: str = "ws://localhost:9013/feed"
    reconnect_delay: float = 2.0
    heartbeat: float = 30.0
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "drones/positions"
    mqtt_keepalive: int = 120
    mqtt_tls: bool = False
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    strict_invariants: bool = False

    @property
    def effective_sweep_interval_ms(self) -> int:
        """Sweep period actually used by the evictor."""
        if self.sweep_interval_ms is not None:
            return self.sweep_interval_ms
        return max(self.stale_window_ms // 3, 1)

    def validate(self) -> TrackerConfig:
        """Check value ranges, returning ``self`` for chaining."""
        if self.stale_window_ms <= 0:
            raise TrackerConfigError(f"stale_window_ms must be positive, got {self.stale_window_ms}")
        interval = self.effective_sweep_interval_ms
        if interval <= 0 or interval >= self.stale_window_ms:
            raise TrackerConfigError(
                f"sweep interval ({interval} ms) must be positive and shorter than the "
                f"stale window ({self.stale_window_ms} ms)"
            )
        if self.feed_kind not in FEED_KINDS:
            raise TrackerConfigError(f"feed_kind must be one of {sorted(FEED_KINDS)}, got {self.feed_kind!r}")
        if self.reconnect_delay < 0:
            raise TrackerConfigError("reconnect_delay must not be negative")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from ``DRONETRACK_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "DRONETRACK_FEED_KIND": "feed_kind",
            "DRONETRACK_FEED_URL": "feed_url",
            "DRONETRACK_MQTT_HOST": "mqtt_host",
            "DRONETRACK_MQTT_TOPIC": "mqtt_topic",
            "DRONETRACK_MQTT_USERNAME": "mqtt_username",
            "DRONETRACK_MQTT_PASSWORD": "mqtt_password",
        }
        _ENV_INT_MAP = {
            "DRONETRACK_STALE_WINDOW_MS": "stale_window_ms",
            "DRONETRACK_SWEEP_INTERVAL_MS": "sweep_interval_ms",
            "DRONETRACK_MQTT_PORT": "mqtt_port",
            "DRONETRACK_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        _ENV_FLOAT_MAP = {
            "DRONETRACK_RECONNECT_DELAY": "reconnect_delay",
            "DRONETRACK_HEARTBEAT": "heartbeat",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise TrackerConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("DRONETRACK_MQTT_TLS"), False)
        if "strict_invariants" not in overrides:
            config_kwargs["strict_invariants"] = _env_bool(env.get("DRONETRACK_STRICT_INVARIANTS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs).validate()
