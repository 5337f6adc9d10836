# src/gleaner/models/chunk.py
"""Input unit for extraction runs."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from .base_model import GleanerBaseModel as BaseModel


class Chunk(BaseModel):
    """One piece of document text with its sequence identifier."""

    model_config = ConfigDict(frozen=True)

    content: str
    sequence_number: int = Field(..., ge=0)


__all__ = ["Chunk"]
