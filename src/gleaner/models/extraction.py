# src/gleaner/models/extraction.py
"""Per-chunk and aggregate extraction results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from .base_model import GleanerBaseModel as BaseModel


class ErrorKind(str, Enum):
    """Classification of a chunk failure."""

    CONFIGURATION = "configuration"
    SERVICE_TRANSIENT = "service_transient"
    SCHEMA_VALIDATION = "schema_validation"
    RETRIES_EXHAUSTED = "retries_exhausted"
    EXTRACTION_FAILED = "extraction_failed"


class ChunkResult(BaseModel):
    """Outcome of one chunk, recorded once and never retried afterwards."""

    items: list[Any] = Field(default_factory=list)
    sequence_number: int
    succeeded: bool
    error_message: str | None = None
    error_kind: ErrorKind | None = None


class Metrics(BaseModel):
    """Aggregate counters for one extraction run."""

    total_items: int = Field(..., ge=0)
    items_before_dedup: int = Field(..., ge=0)
    processing_duration_ms: int = Field(..., ge=0)
    average_confidence: float | None = None


class AggregateResult(BaseModel):
    """Deduplicated items plus per-chunk outcomes for one extraction run."""

    items: list[Any] = Field(default_factory=list)
    chunks_processed: int = Field(..., ge=0)
    chunks_failed: int = Field(..., ge=0)
    chunk_results: list[ChunkResult] = Field(default_factory=list)
    metrics: Metrics


__all__ = ["AggregateResult", "ChunkResult", "ErrorKind", "Metrics"]
