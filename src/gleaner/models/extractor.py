# src/gleaner/models/extractor.py
"""Extractor contract consumed by the pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from .configuration import CallConfig


@dataclass(frozen=True, slots=True)
class ExtractorConfig:
    """Item schema, prompt builder and optional call budget for one kind of extraction.

    ``call_config`` overrides the pipeline default scheduling budget when set.
    """

    name: str
    item_schema: type[BaseModel]
    build_prompt: Callable[[str], str]
    description: str = ""
    call_config: CallConfig | None = None


__all__ = ["ExtractorConfig"]
