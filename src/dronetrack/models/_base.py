"""Base model for feed-derived values.

Every model parsed from the position feed inherits from :class:`FeedModel`
which provides:

* frozen instances, so snapshots can share them without copying.
* ``extra="ignore"`` so unknown feed fields are tolerated.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``""``, ``"--"``, NaN) so the field default is used, or the field is
  reported missing when it has none.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator

# Sentinel strings feeds use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


class FeedModel(BaseModel):
    """Base for models validated from raw feed dicts."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """Legacy key renames applied before validation (``{old: new}``)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        """Strip sentinel values and apply key aliases on *values*."""
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_feed_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        return FeedModel._clean_dict(values, aliases)
