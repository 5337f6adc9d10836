# src/gleaner/core/dedup.py
"""Tiered, first-occurrence-wins deduplication of extracted items."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .items import canonical_json, get_field


class ItemShape(Enum):
    """Which dedup key tier applies to an item."""

    HAS_EVIDENCE = "has_evidence"
    HAS_DESCRIPTION = "has_description"
    OPAQUE = "opaque"


@dataclass(frozen=True, slots=True)
class DedupKey:
    shape: ItemShape
    value: str


def _description_evidence_text(item: Any) -> str | None:
    evidence = get_field(item, "evidence")
    span = get_field(evidence, "description_span", "descriptionSpan")
    text = get_field(span, "text")
    if isinstance(text, str) and text:
        return text
    return None


def classify_item(item: Any) -> DedupKey:
    """Resolve the dedup key of ``item`` once.

    1. Description evidence text, trimmed.
    2. A string ``description`` field, lower-cased and trimmed.
    3. Canonical JSON of the whole item.
    """
    evidence_text = _description_evidence_text(item)
    if evidence_text is not None:
        return DedupKey(ItemShape.HAS_EVIDENCE, evidence_text.strip())

    description = get_field(item, "description")
    if isinstance(description, str):
        return DedupKey(ItemShape.HAS_DESCRIPTION, description.lower().strip())

    return DedupKey(ItemShape.OPAQUE, canonical_json(item))


def dedupe(items: list[Any]) -> list[Any]:
    """Drop later duplicates, keeping the first occurrence and input order."""
    seen: set[DedupKey] = set()
    kept: list[Any] = []
    for item in items:
        key = classify_item(item)
        if key in seen:
            continue
        seen.add(key)
        kept.append(item)
    return kept


__all__ = ["DedupKey", "ItemShape", "classify_item", "dedupe"]
