# src/gleaner/core/items.py
"""Field access helpers for extracted items.

Items arrive either as pydantic models (validated by the structured caller)
or as plain mappings (scripted callers, tests). These helpers read both the
same way so dedup and metrics never care which one they were handed.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

_MISSING = object()


def get_field(obj: Any, *names: str, default: Any = None) -> Any:
    """Return the first present field among ``names`` on ``obj``.

    Mappings are read by key, everything else by attribute. A field that is
    present but ``None`` counts as absent so aliases such as
    ``description_span`` / ``descriptionSpan`` can fall through.
    """
    if obj is None:
        return default
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name, _MISSING)
        else:
            value = getattr(obj, name, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def to_plain(obj: Any) -> Any:
    """Convert pydantic models to JSON-compatible data; pass others through."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return obj


def canonical_json(obj: Any) -> str:
    """Serialize ``obj`` with sorted keys so equal structures compare equal."""
    return json.dumps(
        to_plain(obj),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def get_confidence(item: Any) -> float | None:
    """Return the item's numeric ``confidence`` field, if it has one."""
    value = get_field(item, "confidence")
    # bool is an int subclass but never a confidence score
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def average_confidence(items: list[Any]) -> float | None:
    """Mean ``confidence`` of ``items``, or ``None`` when the schema has none.

    Only the first item is probed; later items without a score count as 0.
    """
    if not items or get_confidence(items[0]) is None:
        return None
    total = sum(get_confidence(item) or 0.0 for item in items)
    return total / len(items)


__all__ = [
    "average_confidence",
    "canonical_json",
    "get_confidence",
    "get_field",
    "to_plain",
]
