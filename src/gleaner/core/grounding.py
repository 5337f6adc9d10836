# src/gleaner/core/grounding.py
"""Deterministic resolution of verbatim evidence text to source offsets.

Offsets are only ever produced by a leftmost substring search; nothing here
infers or approximates a location. A miss is a normal outcome, not an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from gleaner.models.evidence import EvidenceSpan, RawEvidenceSpan


def resolve_offsets(
    source: str, text: str, search_from: int = 0
) -> EvidenceSpan | None:
    """Locate ``text`` in ``source`` starting at ``search_from``.

    Returns ``None`` when either string is empty or ``text`` does not occur.
    """
    if not source or not text:
        return None
    start = source.find(text, max(search_from, 0))
    if start == -1:
        return None
    return EvidenceSpan(text=text, start_offset=start, end_offset=start + len(text))


def resolve_many(source: str, texts: Iterable[str]) -> list[EvidenceSpan]:
    """Resolve each text independently from offset 0, omitting misses."""
    spans: list[EvidenceSpan] = []
    for text in texts:
        span = resolve_offsets(source, text)
        if span is not None:
            spans.append(span)
    return spans


def resolve_keyed(
    source: str,
    raw_spans: Mapping[str, RawEvidenceSpan | str | None],
) -> dict[str, EvidenceSpan | None]:
    """Resolve each named raw span, keeping ``None`` for keys that miss."""
    resolved: dict[str, EvidenceSpan | None] = {}
    for key, raw in raw_spans.items():
        text = raw.text if isinstance(raw, RawEvidenceSpan) else raw
        resolved[key] = resolve_offsets(source, text) if text else None
    return resolved


__all__ = ["resolve_keyed", "resolve_many", "resolve_offsets"]
