# src/gleaner/extractors/facts.py
"""Short verifiable facts, tuned for latency rather than quota safety."""

from __future__ import annotations

from pydantic import Field

from gleaner.models.base_model import GleanerBaseModel as BaseModel
from gleaner.models.configuration import CallConfig
from gleaner.models.extractor import ExtractorConfig


class Fact(BaseModel):
    fact: str = Field(..., description="A single verifiable fact from the text")
    confidence: float = Field(..., ge=0.0, le=1.0)


def build_prompt(text: str) -> str:
    return f"Extract all unique verifiable facts from this text:\n\n{text}"


# Three concurrent calls stay under a 10 RPM free-tier quota.
FACT_CALL_CONFIG = CallConfig(max_concurrent=3, min_start_spacing=2.0)

fact_extractor = ExtractorConfig(
    name="fact-extractor",
    item_schema=Fact,
    build_prompt=build_prompt,
    description="Extracts key facts from text",
    call_config=FACT_CALL_CONFIG,
)


__all__ = ["FACT_CALL_CONFIG", "Fact", "build_prompt", "fact_extractor"]
