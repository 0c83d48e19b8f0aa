"""Feed batch parsing.

Every ingestion adapter hands the tracker a decoded JSON payload; this module
turns it into validated :class:`~dronetrack.models.report.PositionReport`
objects, silently dropping malformed entries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from dronetrack._redact import redact_for_log
from dronetrack.exceptions import FeedError
from dronetrack.models.report import PositionReport

_logger = logging.getLogger(__name__)


def feature_items(payload: Any) -> list[Any]:
    """Extract the list of feature items from a feed payload.

    Accepts ``{"features": [...]}`` (optionally a GeoJSON
    ``FeatureCollection``), a bare list of items, or a single item.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    features = payload.get("features")
    if isinstance(features, list):
        return features
    if features is None and ("properties" in payload or "trackId" in payload or "registration" in payload):
        return [payload]
    return []


def parse_batch(payload: Any) -> list[PositionReport]:
    """Parse a feed payload into reports, in feed order."""
    items = feature_items(payload)
    reports: list[PositionReport] = []
    for item in items:
        report = PositionReport.from_feature(item)
        if report is None:
            _logger.debug("Dropping malformed feature: %s", redact_for_log(item))
            continue
        reports.append(report)
    if len(reports) != len(items):
        _logger.debug("Parsed %d of %d features", len(reports), len(items))
    return reports


def decode_payload(data: bytes | str) -> dict[str, Any] | list[Any]:
    """Decode one feed frame (MQTT message body or WebSocket text frame)."""
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    try:
        parsed = json.loads(text)
    except ValueError as exc:
        raise FeedError(f"Feed frame is not valid JSON: {exc}") from exc
    if not isinstance(parsed, (dict, list)):
        raise FeedError("Feed frame decoded to a JSON scalar")
    return parsed
