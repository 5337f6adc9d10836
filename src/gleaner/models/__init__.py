# src/gleaner/models/__init__.py
"""Pydantic models shared by the scheduler, pipeline and grounding utilities."""

from .base_model import GleanerBaseModel
from .chunk import Chunk
from .configuration import DEFAULT_CALL_CONFIG, CallConfig
from .evidence import EvidenceSpan, RawEvidenceSpan
from .extraction import AggregateResult, ChunkResult, ErrorKind, Metrics
from .extractor import ExtractorConfig

__all__ = [
    "GleanerBaseModel",
    "Chunk",
    "CallConfig",
    "DEFAULT_CALL_CONFIG",
    "EvidenceSpan",
    "RawEvidenceSpan",
    "AggregateResult",
    "ChunkResult",
    "ErrorKind",
    "Metrics",
    "ExtractorConfig",
]
