# src/gleaner/core/logs.py
"""Structured event logging for extraction runs.

Events are kept in a bounded in-memory buffer for inspection (tests, callers
that want a run transcript) and forwarded to the standard ``gleaner`` logger
so that whatever handler :func:`gleaner.core.logging.init_logging` installed
renders them.
"""

from __future__ import annotations

import functools
import inspect
import json
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast
from uuid import uuid4


class LogLevel(Enum):
    """Log levels with numeric values for filtering."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class EventType(Enum):
    """Event types emitted by the scheduler and the pipeline."""

    SYSTEM = "system"

    # Run lifecycle
    EXTRACTION_START = "extraction_start"
    EXTRACTION_COMPLETE = "extraction_complete"
    CHUNK_PROCESSING = "chunk_processing"

    # External calls
    LLM_REQUEST = "llm_request"
    SCHEDULER = "scheduler"
    RETRY_ATTEMPT = "retry_attempt"
    RETRY_EXHAUSTED = "retry_exhausted"

    # Performance
    METRICS = "metrics"

    # Errors
    ERROR = "error"
    WARNING = "warning"


class Priority(Enum):
    """Event priority levels."""

    CRITICAL = 1  # Errors, configuration failures
    HIGH = 2  # Run lifecycle, retries
    NORMAL = 3  # Chunk progress
    LOW = 4  # Scheduler internals


@dataclass
class EventMetrics:
    """Counters for emitted events."""

    total_events: int = 0
    events_by_type: dict[str, int] = field(default_factory=dict)
    events_by_level: dict[str, int] = field(default_factory=dict)

    def record_event(self, event_type: str, level: str) -> None:
        """Record an event for metrics tracking."""
        self.total_events += 1
        self.events_by_type[event_type] = self.events_by_type.get(event_type, 0) + 1
        self.events_by_level[level] = self.events_by_level.get(level, 0) + 1


@dataclass
class StructuredLogEvent:
    """Structured log event with metadata."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = field(default_factory=time.time)
    event_type: EventType = EventType.SYSTEM
    level: LogLevel = LogLevel.INFO
    priority: Priority = Priority.NORMAL
    message: str = ""
    component: str | None = None
    run_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "level": self.level.name,
            "level_value": self.level.value,
            "priority": self.priority.value,
            "priority_name": self.priority.name,
            "message": self.message,
            "component": self.component,
            "run_id": self.run_id,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class EventFilter:
    """Filter for structured log events."""

    def __init__(
        self,
        min_level: LogLevel = LogLevel.DEBUG,
        event_types: set[EventType] | None = None,
        components: set[str] | None = None,
        run_id: str | None = None,
        metadata_filters: dict[str, Any] | None = None,
    ):
        """Initialize event filter.

        Args:
            min_level: Minimum log level to include
            event_types: Set of event types to include (None = all)
            components: Set of components to include (None = all)
            run_id: Specific extraction run to filter by
            metadata_filters: Dictionary of metadata key-value pairs to match
        """
        self.min_level = min_level
        self.event_types = event_types
        self.components = components
        self.run_id = run_id
        self.metadata_filters = metadata_filters or {}

    def matches(self, event: StructuredLogEvent) -> bool:
        """Check if event matches this filter."""
        if event.level.value < self.min_level.value:
            return False

        if self.event_types is not None and event.event_type not in self.event_types:
            return False

        if (
            self.components is not None
            and event.component is not None
            and event.component not in self.components
        ):
            return False

        if self.run_id is not None and event.run_id != self.run_id:
            return False

        for key, expected_value in self.metadata_filters.items():
            if key not in event.metadata or event.metadata[key] != expected_value:
                return False

        return True


_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


class EventLogger:
    """Structured logging facade used throughout Gleaner.

    Keeps the most recent ``max_events`` events in memory and mirrors each one
    to the ``gleaner`` logger with a compact ``[TYPE] (context) <metadata>``
    prefix.
    """

    def __init__(self, max_events: int = 10000):
        """Initialize event logger.

        Args:
            max_events: Maximum number of events to store in memory
        """
        self.max_events = max_events
        self._events: deque[StructuredLogEvent] = deque(maxlen=max_events)
        self._metrics = EventMetrics()
        self._traditional_logger = logging.getLogger("gleaner")

    def _log_to_traditional(self, event: StructuredLogEvent) -> None:
        """Mirror event to the standard logging system."""
        parts = [f"[{event.event_type.value.upper()}]"]
        context = self._format_context(event)
        if context:
            parts.append(context)
        key_metadata = self._format_key_metadata(event)
        if key_metadata:
            parts.append(key_metadata)
        header = " ".join(parts)
        self._traditional_logger.log(
            _LEVEL_MAP.get(event.level, logging.INFO), "%s %s", header, event.message
        )

    def _format_context(self, event: StructuredLogEvent) -> str:
        context_parts = []
        if event.component:
            context_parts.append(f"comp:{event.component.replace('gleaner.', '')}")
        if event.run_id:
            context_parts.append(f"run:{event.run_id[:8]}")
        return f"({' | '.join(context_parts)})" if context_parts else ""

    def _format_key_metadata(self, event: StructuredLogEvent) -> str:
        if not event.metadata:
            return ""

        key_info = []
        if "operation" in event.metadata:
            key_info.append(f"op:{event.metadata['operation']}")
        if "sequence_number" in event.metadata:
            key_info.append(f"chunk:{event.metadata['sequence_number']}")
        if "attempt" in event.metadata and "max_attempts" in event.metadata:
            key_info.append(
                f"attempt:{event.metadata['attempt']}/{event.metadata['max_attempts']}"
            )
        if "duration_ms" in event.metadata:
            duration = event.metadata["duration_ms"]
            if isinstance(duration, int | float):
                key_info.append(f"dur:{duration:.0f}ms")

        return f"<{' | '.join(key_info)}>" if key_info else ""

    def log_event(self, event: StructuredLogEvent) -> None:
        """Store ``event`` and forward it to the standard logger."""
        self._metrics.record_event(event.event_type.value, event.level.name)
        self._events.append(event)
        try:
            self._log_to_traditional(event)
        except Exception as e:
            fallback_logger = logging.getLogger("gleaner.logs.fallback")
            fallback_logger.error("Failed to log to traditional logger: %s", e)

    def log(
        self,
        level: LogLevel,
        message: str,
        event_type: EventType = EventType.SYSTEM,
        priority: Priority = Priority.NORMAL,
        component: str | None = None,
        run_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log a message with structured metadata.

        Args:
            level: Log level
            message: Log message
            event_type: Type of event
            priority: Event priority
            component: Optional component name
            run_id: Optional extraction run identifier
            metadata: Additional metadata
        """
        self.log_event(
            StructuredLogEvent(
                level=level,
                event_type=event_type,
                priority=priority,
                message=message,
                component=component,
                run_id=run_id,
                metadata=dict(metadata or {}),
            )
        )

    # Convenience methods for different log levels
    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        kwargs.setdefault("priority", Priority.LOW)
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        kwargs.setdefault("event_type", EventType.WARNING)
        kwargs.setdefault("priority", Priority.HIGH)
        self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        kwargs.setdefault("event_type", EventType.ERROR)
        kwargs.setdefault("priority", Priority.CRITICAL)
        self.log(LogLevel.ERROR, message, **kwargs)

    def log_retry_attempt(
        self,
        attempt: int,
        max_attempts: int,
        delay_ms: float,
        **kwargs: Any,
    ) -> None:
        """Log retry attempts."""
        metadata = dict(kwargs.pop("metadata", None) or {})
        metadata.update(
            {"attempt": attempt, "max_attempts": max_attempts, "delay_ms": delay_ms}
        )
        self.log(
            LogLevel.WARNING,
            f"Retry attempt {attempt}/{max_attempts} after {delay_ms:.0f}ms delay",
            event_type=EventType.RETRY_ATTEMPT,
            priority=Priority.HIGH,
            metadata=metadata,
            **kwargs,
        )

    def log_retry_exhausted(self, total_attempts: int, **kwargs: Any) -> None:
        """Log retry exhaustion."""
        metadata = dict(kwargs.pop("metadata", None) or {})
        metadata.update({"total_attempts": total_attempts})
        self.log(
            LogLevel.ERROR,
            f"Retry attempts exhausted after {total_attempts} tries",
            event_type=EventType.RETRY_EXHAUSTED,
            priority=Priority.CRITICAL,
            metadata=metadata,
            **kwargs,
        )

    def get_events(
        self, event_filter: EventFilter | None = None, limit: int | None = None
    ) -> list[StructuredLogEvent]:
        """Return stored events, optionally filtered and limited to the newest ``limit``."""
        events = list(self._events)
        if event_filter:
            events = [event for event in events if event_filter.matches(event)]
        if limit:
            events = events[-limit:]
        return events

    def get_logs(self, run_id: str | None = None, limit: int = 100) -> list[str]:
        """Return stored events as ``[LEVEL] message`` strings."""
        event_filter = EventFilter(run_id=run_id) if run_id else None
        events = self.get_events(event_filter, limit)
        return [f"[{event.level.name}] {event.message}" for event in events]

    def get_metrics(self) -> dict[str, Any]:
        """Get current event counters."""
        return {
            "total_events": self._metrics.total_events,
            "events_by_type": dict(self._metrics.events_by_type),
            "events_by_level": dict(self._metrics.events_by_level),
            "memory_events": len(self._events),
        }

    def clear_logs(self) -> None:
        """Clear all stored log events."""
        self._events.clear()


# Global event logger instance
_event_logger: EventLogger | None = None


def get_event_logger() -> EventLogger:
    """Get global event logger instance."""
    global _event_logger
    if _event_logger is None:
        _event_logger = EventLogger()
    return _event_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``gleaner``."""
    if name == "gleaner" or name.startswith("gleaner."):
        return logging.getLogger(name)
    return logging.getLogger("gleaner").getChild(name)


def _log_call_failure(
    event_logger: EventLogger,
    func: Callable[..., Any],
    error: Exception,
    start_time: float,
) -> None:
    # Retryable failures are reported by the scheduler as retry attempts
    log = (
        event_logger.warning
        if getattr(error, "retryable", False)
        else event_logger.error
    )
    log(
        f"Error in {func.__qualname__}: {error}",
        component=func.__module__,
        metadata={
            "function": func.__qualname__,
            "error_type": type(error).__name__,
            "duration_ms": (time.perf_counter() - start_time) * 1000,
        },
    )


def log_calls(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorate func to log calls at the DEBUG level.

    Failures are logged at ERROR, or at WARNING when the exception is marked
    ``retryable``.
    """
    event_logger = get_event_logger()

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_call_failure(event_logger, func, e, start_time)
                raise
            event_logger.debug(
                f"Exiting {func.__qualname__} successfully",
                component=func.__module__,
                metadata={
                    "function": func.__qualname__,
                    "duration_ms": (time.perf_counter() - start_time) * 1000,
                },
            )
            return result

        return cast(Callable[..., Any], async_wrapper)

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _log_call_failure(event_logger, func, e, start_time)
            raise
        event_logger.debug(
            f"Exiting {func.__qualname__} successfully",
            component=func.__module__,
            metadata={
                "function": func.__qualname__,
                "duration_ms": (time.perf_counter() - start_time) * 1000,
            },
        )
        return result

    return cast(Callable[..., Any], sync_wrapper)


def get_logs(run_id: str | None = None, limit: int = 100) -> list[str]:
    """Return the captured log messages."""
    return get_event_logger().get_logs(run_id, limit)


def clear_logs() -> None:
    """Remove all stored log messages."""
    get_event_logger().clear_logs()


__all__ = [
    # Main classes
    "EventLogger",
    "StructuredLogEvent",
    "EventFilter",
    "EventMetrics",
    # Enums
    "LogLevel",
    "EventType",
    "Priority",
    # Functions
    "get_event_logger",
    "get_logger",
    "get_logs",
    "clear_logs",
    "log_calls",
]
