"""Ingestion layer.

This package contains the adapters that receive position batches (MQTT,
WebSocket) and the helpers that normalize them into reports. Only the
state/store layer is allowed to merge those reports.
"""

__all__: list[str] = []
