from __future__ import annotations

import json
import logging

import pytest

import gleaner.core.logging as logging_setup
from gleaner.core.errors import RetryableServiceError, SchemaValidationError
from gleaner.core.logs import (
    EventFilter,
    EventLogger,
    EventType,
    LogLevel,
    get_event_logger,
    get_logger,
    log_calls,
)


def test_events_are_buffered_and_filtered():
    logger = EventLogger(max_events=10)
    logger.info("run a started", event_type=EventType.EXTRACTION_START, run_id="a")
    logger.debug("admitted", event_type=EventType.SCHEDULER, run_id="a")
    logger.error("chunk failed", run_id="b", metadata={"sequence_number": 2})

    assert len(logger.get_events()) == 3
    assert [e.message for e in logger.get_events(EventFilter(run_id="a"))] == [
        "run a started",
        "admitted",
    ]
    errors = logger.get_events(EventFilter(min_level=LogLevel.ERROR))
    assert [e.event_type for e in errors] == [EventType.ERROR]
    assert logger.get_events(EventFilter(metadata_filters={"sequence_number": 2})) == errors
    assert logger.get_logs(run_id="b") == ["[ERROR] chunk failed"]
    assert logger.get_metrics()["total_events"] == 3


def test_buffer_is_bounded():
    logger = EventLogger(max_events=2)
    for i in range(5):
        logger.info(f"event {i}")

    assert [e.message for e in logger.get_events()] == ["event 3", "event 4"]


def test_events_are_mirrored_to_the_gleaner_logger(caplog):
    caplog.set_level(logging.INFO, logger="gleaner")
    logger = EventLogger()

    logger.info(
        "chunk done",
        event_type=EventType.CHUNK_PROCESSING,
        component="gleaner.pipeline.orchestrator",
        run_id="1234567890",
        metadata={"sequence_number": 3},
    )

    assert "[CHUNK_PROCESSING] (comp:pipeline.orchestrator | run:12345678) <chunk:3> chunk done" in caplog.text


def test_event_serializes_to_json():
    logger = EventLogger()
    logger.warning("slow", metadata={"duration_ms": 12.5})

    payload = json.loads(logger.get_events()[0].to_json())

    assert payload["level"] == "WARNING"
    assert payload["metadata"] == {"duration_ms": 12.5}


def test_get_logger_namespaces_under_gleaner():
    assert get_logger("scripts.demo").name == "gleaner.scripts.demo"
    assert get_logger("gleaner.core").name == "gleaner.core"


@pytest.mark.asyncio
async def test_log_calls_wraps_coroutines_and_reraises():
    @log_calls
    async def explode() -> None:
        raise RuntimeError("nope")

    @log_calls
    async def answer() -> int:
        return 42

    assert await answer() == 42
    with pytest.raises(RuntimeError):
        await explode()


@pytest.mark.asyncio
async def test_log_calls_logs_retryable_failures_as_warnings():
    @log_calls
    async def throttled() -> None:
        raise RetryableServiceError("rate limited")

    @log_calls
    def malformed() -> None:
        raise SchemaValidationError("bad payload")

    with pytest.raises(RetryableServiceError):
        await throttled()
    with pytest.raises(SchemaValidationError):
        malformed()

    events = get_event_logger().get_events(EventFilter(min_level=LogLevel.WARNING))
    levels = {event.metadata["function"].rsplit(".", 1)[-1]: event.level for event in events}
    assert levels["throttled"] == LogLevel.WARNING
    assert levels["malformed"] == LogLevel.ERROR


def test_init_logging_json_format(monkeypatch, capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.setattr(logging_setup, "_LOGGING_INITIALIZED", False)
    try:
        logging_setup.init_logging(level="INFO", format="json", log_file="")
        logging.getLogger("gleaner.test").info("hello", extra={"chunk": 1})
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    assert lines[0]["logger"] == "gleaner.start"
    assert lines[-1]["message"] == "hello"
    assert lines[-1]["chunk"] == 1
