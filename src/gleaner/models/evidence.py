# src/gleaner/models/evidence.py
"""Evidence span models for source grounding."""

from __future__ import annotations

from pydantic import ConfigDict, Field, model_validator

from .base_model import GleanerBaseModel as BaseModel


class RawEvidenceSpan(BaseModel):
    """Evidence text as returned by the model, not yet located in the source."""

    text: str = Field(
        ...,
        min_length=1,
        description="Exact text copied verbatim from the source document",
    )


class EvidenceSpan(BaseModel):
    """A located span of source text that supports an extracted value.

    Attributes:
        text: The exact substring of the source.
        start_offset: Character offset (inclusive) from the beginning of the source.
        end_offset: Character offset (exclusive) from the beginning of the source.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    start_offset: int = Field(..., ge=0, description="Inclusive start offset")
    end_offset: int = Field(..., gt=0, description="Exclusive end offset")

    @model_validator(mode="after")
    def _check_bounds(self) -> EvidenceSpan:
        if self.end_offset - self.start_offset != len(self.text):
            raise ValueError("offsets must delimit exactly the span text")
        return self


__all__ = ["EvidenceSpan", "RawEvidenceSpan"]
