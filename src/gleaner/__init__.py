# src/gleaner/__init__.py
"""Gleaner: rate-limited, failure-isolated structured extraction over document chunks."""

from .core.chunking import chunk_by_size, split_into_pages
from .core.dedup import dedupe
from .core.grounding import resolve_keyed, resolve_many, resolve_offsets
from .core.scheduler import CallScheduler
from .models import (
    AggregateResult,
    CallConfig,
    Chunk,
    ChunkResult,
    EvidenceSpan,
    ExtractorConfig,
    Metrics,
)
from .pipeline import ExtractionPipeline

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AggregateResult",
    "CallConfig",
    "CallScheduler",
    "Chunk",
    "ChunkResult",
    "EvidenceSpan",
    "ExtractionPipeline",
    "ExtractorConfig",
    "Metrics",
    "chunk_by_size",
    "dedupe",
    "resolve_keyed",
    "resolve_many",
    "resolve_offsets",
    "split_into_pages",
]
