# src/gleaner/core/errors.py
"""Error taxonomy and deterministic classification for extraction calls.

Every failure that reaches a ``ChunkResult`` is an :class:`ExtractionError`.
Foreign exceptions (provider SDK errors, pydantic validation errors, network
errors) are mapped onto the taxonomy by :func:`classify_exception`, which is
also what the scheduler consults to decide whether a call may be retried.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from pydantic import ValidationError

from gleaner.models.extraction import ErrorKind

_TRANSIENT_ERROR_NAMES: frozenset[str] = frozenset(
    {
        "RateLimitError",
        "TooManyRequestsError",
        "QuotaExceededError",
        "Timeout",
        "TimeoutError",
        "APITimeoutError",
        "ConnectTimeoutError",
        "ReadTimeoutError",
        "ConnectionError",
        "ConnectionResetError",
        "APIConnectionError",
        "ServiceUnavailableError",
        "InternalServerError",
    }
)
_CONFIGURATION_ERROR_NAMES: frozenset[str] = frozenset(
    {
        "AuthenticationError",
        "PermissionDeniedError",
        "UnauthorizedError",
    }
)
_TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})
_CONFIGURATION_STATUS_CODES: frozenset[int] = frozenset({401, 403})

# Whole words or phrases only; digits inside larger numbers must not match
_TRANSIENT_MESSAGE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\brate[ _-]?limit(?:s|ed|ing)?\b",
        r"\btoo many requests\b",
        r"\b(?:http|status|error|code)[ :]*(?:429|500|502|503|504)\b",
        r"\bresource_exhausted\b",
        r"\btimed out\b",
        r"\btimeout\b",
        r"\btemporarily unavailable\b",
        r"\bservice unavailable\b",
        r"\bconnection reset\b",
        r"\btry again later\b",
    )
)
_CONFIGURATION_MESSAGE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\binvalid api key\b",
        r"\bapi key not valid\b",
        r"\bunauthorized\b",
        r"\bpermission denied\b",
    )
)


class ExtractionError(Exception):
    """Base class for every failure the pipeline records.

    Attributes:
        kind: Failure classification reported on ``ChunkResult.error_kind``.
        retryable: Whether the scheduler may retry the call that raised it.
        cause: The foreign exception this error wraps, if any.
    """

    kind: ErrorKind = ErrorKind.EXTRACTION_FAILED
    retryable: bool = False

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def code(self) -> str:
        """Stable string code of this error's kind."""
        return self.kind.value


class ConfigurationError(ExtractionError):
    """Missing or invalid configuration, such as an absent API key."""

    kind = ErrorKind.CONFIGURATION


class RetryableServiceError(ExtractionError):
    """Transient provider failure (rate limit, timeout, unavailable)."""

    kind = ErrorKind.SERVICE_TRANSIENT
    retryable = True


class SchemaValidationError(ExtractionError):
    """Provider output did not conform to the required item schema."""

    kind = ErrorKind.SCHEMA_VALIDATION


class RetryExhaustedError(ExtractionError):
    """A retryable call kept failing until its retry budget ran out."""

    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(
        self, label: str, attempts: int, last_error: BaseException | None
    ) -> None:
        super().__init__(
            f"{label} failed after {attempts} attempt(s): {last_error}",
            cause=last_error,
        )
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True, slots=True)
class ErrorClassification:
    """Normalized classification of an arbitrary exception."""

    kind: ErrorKind
    retryable: bool
    matched_rule: str


def _first_match(haystack: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        match = pattern.search(haystack)
        if match is not None:
            return match.group(0)
    return None


def _status_code(error: BaseException) -> int | None:
    for source in (error, getattr(error, "response", None)):
        code = getattr(source, "status_code", None)
        if isinstance(code, int) and not isinstance(code, bool):
            return code
    return None


def classify_exception(error: BaseException) -> ErrorClassification:
    """Classify ``error`` into the extraction error taxonomy.

    Order of precedence: the error's own class when it is an
    :class:`ExtractionError`, then schema failures, then an HTTP
    ``status_code`` on the error or its response, then known exception type
    names anywhere in the MRO, then word-bounded message patterns. An error
    with any other status code, or that matches nothing, is a terminal
    ``extraction_failed``.
    """
    if isinstance(error, ExtractionError):
        return ErrorClassification(error.kind, error.retryable, "extraction_error")

    if isinstance(error, ValidationError | json.JSONDecodeError):
        return ErrorClassification(ErrorKind.SCHEMA_VALIDATION, False, "schema")

    status = _status_code(error)
    if status in _CONFIGURATION_STATUS_CODES:
        return ErrorClassification(ErrorKind.CONFIGURATION, False, f"status:{status}")
    if status in _TRANSIENT_STATUS_CODES:
        return ErrorClassification(ErrorKind.SERVICE_TRANSIENT, True, f"status:{status}")

    type_names = {cls.__name__ for cls in type(error).__mro__}
    if type_names & _CONFIGURATION_ERROR_NAMES:
        return ErrorClassification(ErrorKind.CONFIGURATION, False, "auth_type")
    if type_names & _TRANSIENT_ERROR_NAMES:
        return ErrorClassification(ErrorKind.SERVICE_TRANSIENT, True, "transient_type")

    if status is not None:
        return ErrorClassification(ErrorKind.EXTRACTION_FAILED, False, f"status:{status}")

    message = str(error).lower()
    pattern = _first_match(message, _CONFIGURATION_MESSAGE_PATTERNS)
    if pattern is not None:
        return ErrorClassification(
            ErrorKind.CONFIGURATION, False, f"auth_message:{pattern}"
        )
    pattern = _first_match(message, _TRANSIENT_MESSAGE_PATTERNS)
    if pattern is not None:
        return ErrorClassification(
            ErrorKind.SERVICE_TRANSIENT, True, f"transient_message:{pattern}"
        )

    return ErrorClassification(ErrorKind.EXTRACTION_FAILED, False, "default")


def is_retryable(error: BaseException) -> bool:
    """Return ``True`` when the scheduler may retry after ``error``."""
    return classify_exception(error).retryable


_ERROR_TYPES: dict[ErrorKind, type[ExtractionError]] = {
    ErrorKind.CONFIGURATION: ConfigurationError,
    ErrorKind.SERVICE_TRANSIENT: RetryableServiceError,
    ErrorKind.SCHEMA_VALIDATION: SchemaValidationError,
    ErrorKind.EXTRACTION_FAILED: ExtractionError,
}


def wrap_error(error: BaseException, context: str | None = None) -> ExtractionError:
    """Return ``error`` as an :class:`ExtractionError`.

    Extraction errors pass through unchanged; anything else is wrapped in the
    class matching its classification, with ``context`` prefixed to the message.
    """
    if isinstance(error, ExtractionError):
        return error

    classification = classify_exception(error)
    error_type = _ERROR_TYPES.get(classification.kind, ExtractionError)
    detail = str(error) or type(error).__name__
    message = f"{context}: {detail}" if context else detail
    return error_type(message, cause=error)


__all__ = [
    "ConfigurationError",
    "ErrorClassification",
    "ExtractionError",
    "RetryExhaustedError",
    "RetryableServiceError",
    "SchemaValidationError",
    "classify_exception",
    "is_retryable",
    "wrap_error",
]
