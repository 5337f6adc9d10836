# src/gleaner/core/__init__.py
"""Scheduling, dedup, grounding and provider plumbing for Gleaner."""

from .chunking import chunk_by_size, split_into_pages
from .dedup import DedupKey, ItemShape, classify_item, dedupe
from .errors import (
    ConfigurationError,
    ErrorClassification,
    ExtractionError,
    RetryableServiceError,
    RetryExhaustedError,
    SchemaValidationError,
    classify_exception,
    is_retryable,
    wrap_error,
)
from .grounding import resolve_keyed, resolve_many, resolve_offsets
from .llm import LiteLLMStructuredCaller, StructuredCaller
from .logs import get_event_logger, get_logger
from .scheduler import CallScheduler, SchedulerStats

__all__ = [
    "chunk_by_size",
    "split_into_pages",
    "DedupKey",
    "ItemShape",
    "classify_item",
    "dedupe",
    "ConfigurationError",
    "ErrorClassification",
    "ExtractionError",
    "RetryableServiceError",
    "RetryExhaustedError",
    "SchemaValidationError",
    "classify_exception",
    "is_retryable",
    "wrap_error",
    "resolve_keyed",
    "resolve_many",
    "resolve_offsets",
    "LiteLLMStructuredCaller",
    "StructuredCaller",
    "get_event_logger",
    "get_logger",
    "CallScheduler",
    "SchedulerStats",
]
