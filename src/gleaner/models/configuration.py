# src/gleaner/models/configuration.py
"""Call scheduling budget for one orchestration run."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from .base_model import GleanerBaseModel as BaseModel


class CallConfig(BaseModel):
    """Concurrency, spacing and retry budget for external calls.

    Attributes:
        max_concurrent: Maximum number of calls in flight at once.
        min_start_spacing: Minimum seconds between two admitted call starts.
        max_retries: Retries allowed after the first attempt of a call.
        backoff_multiplier: Base of the exponential backoff between retries.
    """

    model_config = ConfigDict(frozen=True)

    max_concurrent: int = Field(default=1, ge=1)
    min_start_spacing: float = Field(default=7.0, ge=0.0)
    max_retries: int = Field(default=3, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)


# Conservative default sized for free-tier provider quotas.
DEFAULT_CALL_CONFIG = CallConfig(
    max_concurrent=1,
    min_start_spacing=7.0,
    max_retries=3,
    backoff_multiplier=2.0,
)


__all__ = ["CallConfig", "DEFAULT_CALL_CONFIG"]
