from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import pytest
from pydantic import BaseModel

from gleaner.core.logs import clear_logs
from gleaner.models import CallConfig, Chunk, ExtractorConfig


class SimpleItem(BaseModel):
    description: str
    confidence: float | None = None


@dataclass
class Script:
    """How the fake service answers one chunk."""

    items: list[Any] = field(default_factory=list)
    delay: float = 0.0
    failures: list[BaseException] = field(default_factory=list)
    always: BaseException | None = None


class ScriptedCaller:
    """Stand-in for the structured-generation service, keyed by chunk content."""

    def __init__(self, scripts: dict[str, Script] | None = None) -> None:
        self.scripts = scripts or {}
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.start_times: list[float] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def __call__(self, content: str, extractor: ExtractorConfig) -> list[Any]:
        script = self.scripts.setdefault(content, Script())
        self.calls.append(content)
        self.start_times.append(time.monotonic())
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(script.delay)
            if script.always is not None:
                raise script.always
            if script.failures:
                raise script.failures.pop(0)
            self.completed.append(content)
            return list(script.items)
        finally:
            self.in_flight -= 1


def make_chunks(*contents: str) -> list[Chunk]:
    return [
        Chunk(content=content, sequence_number=index)
        for index, content in enumerate(contents, start=1)
    ]


@pytest.fixture(autouse=True)
def _reset_event_log():
    clear_logs()
    yield
    clear_logs()


@pytest.fixture
def fast_config() -> CallConfig:
    return CallConfig(max_concurrent=1, min_start_spacing=0.0, max_retries=0)


@pytest.fixture
def extractor(fast_config: CallConfig) -> ExtractorConfig:
    return ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=lambda text: f"Extract items:\n{text}",
        call_config=fast_config,
    )
