# src/gleaner/core/llm.py
"""Structured-generation caller backed by LiteLLM.

The pipeline only needs an async callable ``(content, extractor) -> items``
(:class:`StructuredCaller`). :class:`LiteLLMStructuredCaller` is the bundled
implementation: it asks the model for ``{"items": [...]}`` constrained by the
extractor's item schema and validates the reply with pydantic.
"""

from __future__ import annotations

import json
import re
import time
from functools import lru_cache
from typing import Any, Protocol

import dirtyjson
from pydantic import BaseModel, Field, ValidationError, create_model

from gleaner.config import LLMConfig, config
from gleaner.models.extractor import ExtractorConfig

from .errors import (
    ConfigurationError,
    ExtractionError,
    SchemaValidationError,
    wrap_error,
)
from .logs import EventType, get_event_logger

event_logger = get_event_logger()

SYSTEM_INSTRUCTION = "Return ONLY valid JSON. No markdown, code fences, or prose."


class StructuredCaller(Protocol):
    """Async callable extracting schema-valid items from one chunk of text."""

    async def __call__(self, content: str, extractor: ExtractorConfig) -> list[Any]: ...


@lru_cache(maxsize=64)
def list_model_for(item_schema: type[BaseModel]) -> type[BaseModel]:
    """Return a ``{items: list[item_schema]}`` wrapper model for ``item_schema``."""
    return create_model(
        f"{item_schema.__name__}List",
        items=(
            list[item_schema],  # type: ignore[valid-type]
            Field(default_factory=list, description="All items found in the text"),
        ),
    )


def strip_code_fences(content: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    content = content.strip()
    if content.startswith("```"):
        content = re.sub(r"^```(?:json)?\n?", "", content)
        content = re.sub(r"```$", "", content).strip()
    return content


def parse_json_payload(content: str) -> Any:
    """Parse model output as JSON, salvaging near-JSON with ``dirtyjson``."""
    content = strip_code_fences(content)
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        match = re.search(r"({.*}|\[.*\])", content, re.DOTALL)
        candidate = match.group(1) if match else content
        try:
            return dirtyjson.loads(candidate)
        except Exception as recovery_error:
            raise SchemaValidationError(
                f"Response is not valid JSON: {exc}", cause=recovery_error
            ) from recovery_error


class LiteLLMStructuredCaller:
    """Call a LiteLLM-routed model and return validated items.

    Raises :class:`ConfigurationError` at construction when no API key is
    configured, so a misconfigured pipeline fails before any chunk runs.
    """

    def __init__(self, llm_config: LLMConfig | None = None) -> None:
        self.llm_config = llm_config or config.llm
        if not self.llm_config.api_key:
            raise ConfigurationError(
                "No API key configured: set GLEANER_LLM_API_KEY or GEMINI_API_KEY"
            )

    @property
    def model(self) -> str:
        return self.llm_config.model

    async def _complete(self, prompt: str, schema: dict[str, Any]) -> str:
        import litellm

        response = await litellm.acompletion(
            model=self.llm_config.model,
            messages=[{"role": "user", "content": f"{SYSTEM_INSTRUCTION}\n{prompt}"}],
            api_base=self.llm_config.api_base,
            api_key=self.llm_config.api_key,
            temperature=self.llm_config.temperature,
            response_format={"type": "json_schema", "schema": schema},
        )
        return response["choices"][0]["message"]["content"] or ""

    async def __call__(self, content: str, extractor: ExtractorConfig) -> list[Any]:
        list_model = list_model_for(extractor.item_schema)
        prompt = extractor.build_prompt(content)
        start_time = time.perf_counter()

        event_logger.debug(
            f"Sending structured request to {self.model} for {extractor.name}",
            event_type=EventType.LLM_REQUEST,
            component=__name__,
            metadata={
                "operation": "structured_call",
                "model": self.model,
                "extractor": extractor.name,
                "prompt_length": len(prompt),
            },
        )

        try:
            raw = await self._complete(prompt, list_model.model_json_schema())
        except ExtractionError:
            raise
        except Exception as exc:
            raise wrap_error(exc, f"{self.model} request failed") from exc

        data = parse_json_payload(raw)
        if isinstance(data, list):
            data = {"items": data}
        try:
            parsed = list_model.model_validate(data)
        except ValidationError as exc:
            raise SchemaValidationError(
                f"Response does not match {extractor.item_schema.__name__}: {exc}",
                cause=exc,
            ) from exc

        items = list(parsed.items)  # type: ignore[attr-defined]
        event_logger.debug(
            f"Received {len(items)} item(s) from {self.model}",
            event_type=EventType.LLM_REQUEST,
            component=__name__,
            metadata={
                "operation": "structured_call",
                "model": self.model,
                "extractor": extractor.name,
                "item_count": len(items),
                "duration_ms": (time.perf_counter() - start_time) * 1000,
            },
        )
        return items


__all__ = [
    "LiteLLMStructuredCaller",
    "StructuredCaller",
    "list_model_for",
    "parse_json_payload",
    "strip_code_fences",
]
