from __future__ import annotations

import asyncio

import pytest
from conftest import Script, ScriptedCaller, SimpleItem, make_chunks

from gleaner.config import GleanerConfig, LLMConfig
from gleaner.core.errors import (
    ConfigurationError,
    RetryableServiceError,
    SchemaValidationError,
)
from gleaner.core.logs import EventFilter, EventType, LogLevel, get_event_logger
from gleaner.models import CallConfig, ErrorKind, ExtractorConfig
from gleaner.pipeline import ExtractionPipeline


def _item(description: str, confidence: float | None = None) -> dict:
    return {"description": description, "confidence": confidence}


async def _run(pipeline: ExtractionPipeline, mode: str, chunks, extractor):
    if mode == "sequential":
        return await pipeline.extract_sequential(chunks, extractor)
    if mode == "parallel":
        return await pipeline.extract_parallel(chunks, extractor)
    return await pipeline.collect_streaming(chunks, extractor)


MODES = ["sequential", "parallel", "streaming"]


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", MODES)
async def test_failing_chunk_is_isolated(mode, extractor):
    caller = ScriptedCaller(
        {
            "page one": Script(items=[_item("alpha")]),
            "page two": Script(always=SchemaValidationError("items[0].total missing")),
            "page three": Script(items=[_item("gamma")]),
        }
    )
    pipeline = ExtractionPipeline(caller)

    result = await _run(
        pipeline, mode, make_chunks("page one", "page two", "page three"), extractor
    )

    assert result.chunks_processed == 3
    assert result.chunks_failed == 1
    by_number = {r.sequence_number: r for r in result.chunk_results}
    assert by_number[1].succeeded and by_number[3].succeeded
    failed = by_number[2]
    assert failed.succeeded is False
    assert failed.items == []
    assert failed.error_message
    assert failed.error_kind is ErrorKind.SCHEMA_VALIDATION
    assert sorted(item["description"] for item in result.items) == ["alpha", "gamma"]


@pytest.mark.asyncio
async def test_sequential_processes_in_input_order(extractor):
    caller = ScriptedCaller(
        {
            "a": Script(delay=0.03, items=[_item("a")]),
            "b": Script(items=[_item("b")]),
            "c": Script(delay=0.01, items=[_item("c")]),
        }
    )
    pipeline = ExtractionPipeline(caller)

    result = await pipeline.extract_sequential(make_chunks("a", "b", "c"), extractor)

    assert caller.calls == ["a", "b", "c"]
    assert caller.peak_in_flight == 1
    assert [r.sequence_number for r in result.chunk_results] == [1, 2, 3]
    assert [item["description"] for item in result.items] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_parallel_caps_concurrency_and_keeps_input_order():
    caller = ScriptedCaller(
        {str(i): Script(delay=0.05 - i * 0.01, items=[_item(str(i))]) for i in range(5)}
    )
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=2, min_start_spacing=0.0, max_retries=0),
    )
    pipeline = ExtractionPipeline(caller)

    result = await pipeline.extract_parallel(
        make_chunks(*(str(i) for i in range(5))), extractor
    )

    assert caller.peak_in_flight == 2
    assert [r.sequence_number for r in result.chunk_results] == [1, 2, 3, 4, 5]
    assert result.chunks_failed == 0


@pytest.mark.asyncio
async def test_streaming_yields_in_completion_order():
    caller = ScriptedCaller(
        {
            "slow": Script(delay=0.2, items=[_item("slow")]),
            "fast": Script(delay=0.05, items=[_item("fast")]),
        }
    )
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=2, min_start_spacing=0.0, max_retries=0),
    )
    pipeline = ExtractionPipeline(caller)

    order = [
        result.sequence_number
        async for result in pipeline.extract_streaming(
            make_chunks("slow", "fast"), extractor
        )
    ]

    assert order == [2, 1]


@pytest.mark.asyncio
async def test_streaming_yields_every_chunk_exactly_once():
    contents = [f"chunk {i}" for i in range(8)]
    caller = ScriptedCaller(
        {c: Script(delay=0.001 * ((i * 7) % 5), items=[_item(c)]) for i, c in enumerate(contents)}
    )
    caller.scripts["chunk 3"] = Script(always=RuntimeError("boom"))
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=3, min_start_spacing=0.0, max_retries=0),
    )
    pipeline = ExtractionPipeline(caller)

    numbers = [
        result.sequence_number
        async for result in pipeline.extract_streaming(make_chunks(*contents), extractor)
    ]

    assert sorted(numbers) == list(range(1, 9))


@pytest.mark.asyncio
async def test_abandoned_stream_still_finishes_submitted_chunks():
    caller = ScriptedCaller(
        {
            "a": Script(delay=0.01, items=[_item("a")]),
            "b": Script(delay=0.05, items=[_item("b")]),
            "c": Script(delay=0.05, items=[_item("c")]),
        }
    )
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=3, min_start_spacing=0.0, max_retries=0),
    )
    pipeline = ExtractionPipeline(caller)

    stream = pipeline.extract_streaming(make_chunks("a", "b", "c"), extractor)
    first = await anext(stream)
    await stream.aclose()

    assert first.sequence_number == 1
    await asyncio.sleep(0.15)
    assert sorted(caller.completed) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_sequential_and_parallel_agree_on_items(extractor):
    scripts = {
        "one": Script(items=[_item("Widget", 0.9), _item("Gadget", 0.8)]),
        "two": Script(items=[_item("widget ", 0.7), _item("Sprocket", 0.6)]),
        "three": Script(items=[_item("Gizmo", 0.5)]),
    }
    chunks = make_chunks("one", "two", "three")

    sequential = await ExtractionPipeline(ScriptedCaller(dict(scripts))).extract_sequential(
        chunks, extractor
    )
    parallel = await ExtractionPipeline(ScriptedCaller(dict(scripts))).extract_parallel(
        chunks, extractor
    )

    def key(result):
        return sorted(item["description"] for item in result.items)

    assert key(sequential) == key(parallel) == ["Gadget", "Gizmo", "Sprocket", "Widget"]


@pytest.mark.asyncio
async def test_metrics_count_items_before_and_after_dedup(extractor):
    caller = ScriptedCaller(
        {
            "one": Script(items=[_item("Widget", 1.0), _item("Gadget", 0.5)]),
            "two": Script(items=[_item("WIDGET", 0.2)]),
        }
    )

    result = await ExtractionPipeline(caller).extract_sequential(
        make_chunks("one", "two"), extractor
    )

    assert result.metrics.items_before_dedup == 3
    assert result.metrics.total_items == 2
    assert result.metrics.average_confidence == pytest.approx(0.75)
    assert result.metrics.processing_duration_ms >= 0


@pytest.mark.asyncio
async def test_average_confidence_absent_without_confidence_field(extractor):
    caller = ScriptedCaller({"one": Script(items=[{"name": "x"}, {"name": "y"}])})

    result = await ExtractionPipeline(caller).extract_sequential(
        make_chunks("one"), extractor
    )

    assert result.metrics.average_confidence is None


@pytest.mark.asyncio
async def test_exhausted_retries_are_recorded_on_the_chunk():
    caller = ScriptedCaller({"one": Script(always=RetryableServiceError("rate limit"))})
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=1, min_start_spacing=0.0, max_retries=2),
    )

    result = await ExtractionPipeline(caller).extract_sequential(
        make_chunks("one"), extractor
    )

    chunk = result.chunk_results[0]
    assert chunk.succeeded is False
    assert chunk.error_kind is ErrorKind.RETRIES_EXHAUSTED
    assert "Chunk 1 extraction" in chunk.error_message
    assert len(caller.calls) == 3


@pytest.mark.asyncio
async def test_transient_failure_recovers_within_budget():
    caller = ScriptedCaller(
        {
            "one": Script(
                items=[_item("a")],
                failures=[TimeoutError("request timed out")],
            )
        }
    )
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=1, min_start_spacing=0.0, max_retries=1),
    )

    result = await ExtractionPipeline(caller).extract_parallel(
        make_chunks("one"), extractor
    )

    assert result.chunks_failed == 0
    assert len(caller.calls) == 2
    assert not get_event_logger().get_events(EventFilter(min_level=LogLevel.ERROR))


@pytest.mark.asyncio
async def test_unknown_errors_are_wrapped_as_extraction_failed(extractor):
    caller = ScriptedCaller({"one": Script(always=ValueError("unexpected"))})

    result = await ExtractionPipeline(caller).extract_sequential(
        make_chunks("one"), extractor
    )

    chunk = result.chunk_results[0]
    assert chunk.error_kind is ErrorKind.EXTRACTION_FAILED
    assert 'schema "simple"' in chunk.error_message
    assert "unexpected" in chunk.error_message


@pytest.mark.asyncio
async def test_progress_is_reported(extractor):
    calls: list[tuple[int, int, str]] = []
    pipeline = ExtractionPipeline(
        ScriptedCaller(), on_progress=lambda *args: calls.append(args)
    )

    await pipeline.extract_sequential(make_chunks("a", "b"), extractor)

    assert calls == [(1, 2, "Processing chunk 1"), (2, 2, "Processing chunk 2")]


@pytest.mark.asyncio
async def test_empty_input_produces_empty_result(extractor):
    pipeline = ExtractionPipeline(ScriptedCaller())

    result = await pipeline.extract_parallel([], extractor)
    streamed = [r async for r in pipeline.extract_streaming([], extractor)]

    assert result.chunks_processed == 0
    assert result.items == []
    assert result.metrics.average_confidence is None
    assert streamed == []


@pytest.mark.asyncio
async def test_run_events_carry_run_id(extractor):
    await ExtractionPipeline(ScriptedCaller()).extract_sequential(
        make_chunks("a"), extractor
    )

    logger = get_event_logger()
    started = logger.get_events(EventFilter(event_types={EventType.EXTRACTION_START}))
    assert len(started) == 1
    run_id = started[0].run_id
    completed = logger.get_events(
        EventFilter(event_types={EventType.EXTRACTION_COMPLETE}, run_id=run_id)
    )
    assert len(completed) == 1


def test_extractor_call_config_overrides_default(extractor):
    default = CallConfig(max_concurrent=4, min_start_spacing=1.0, max_retries=1)
    pipeline = ExtractionPipeline(ScriptedCaller(), default_call_config=default)
    bare = ExtractorConfig(name="bare", item_schema=SimpleItem, build_prompt=str)

    assert pipeline.create_scheduler(extractor).call_config is extractor.call_config
    assert pipeline.create_scheduler(bare).call_config is default
    assert pipeline.create_scheduler(bare) is not pipeline.create_scheduler(bare)


def test_missing_api_key_fails_at_construction(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GLEANER_LLM_API_KEY", raising=False)
    settings = GleanerConfig(llm=LLMConfig(api_key=""))

    with pytest.raises(ConfigurationError):
        ExtractionPipeline(settings=settings)


@pytest.mark.asyncio
async def test_terminal_error_with_digits_in_message_is_not_retried():
    caller = ScriptedCaller(
        {"one": Script(always=ValueError("line total 1429.00 does not match"))}
    )
    extractor = ExtractorConfig(
        name="simple",
        item_schema=SimpleItem,
        build_prompt=str,
        call_config=CallConfig(max_concurrent=1, min_start_spacing=0.0, max_retries=3),
    )

    result = await ExtractionPipeline(caller).extract_sequential(
        make_chunks("one"), extractor
    )

    assert len(caller.calls) == 1
    assert result.chunk_results[0].error_kind is ErrorKind.EXTRACTION_FAILED
