# src/gleaner/pipeline/orchestrator.py
"""Chunk orchestration: sequential, bounded-parallel and streaming extraction.

Every run builds its own :class:`CallScheduler`, so concurrency and spacing
limits apply per run and never leak between runs. A chunk that fails is
recorded as a failed :class:`ChunkResult`; it never aborts sibling chunks and
never raises out of an ``extract_*`` call.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from typing import Any

from gleaner.config import GleanerConfig, config
from gleaner.core.dedup import dedupe
from gleaner.core.errors import ExtractionError, wrap_error
from gleaner.core.items import average_confidence
from gleaner.core.llm import LiteLLMStructuredCaller, StructuredCaller
from gleaner.core.logs import EventType, Priority, get_event_logger, log_calls
from gleaner.core.scheduler import CallScheduler
from gleaner.models.chunk import Chunk
from gleaner.models.configuration import CallConfig
from gleaner.models.extraction import AggregateResult, ChunkResult, Metrics
from gleaner.models.extractor import ExtractorConfig

ProgressCallback = Callable[[int, int, str], None]

event_logger = get_event_logger()

# Streaming tasks outlive an abandoned consumer; keep them referenced until done.
_background_tasks: set[asyncio.Task[ChunkResult]] = set()


class ExtractionPipeline:
    """Drive chunks through a structured caller under a call budget.

    Args:
        caller: Async ``(content, extractor) -> items`` callable. Defaults to a
            :class:`LiteLLMStructuredCaller`, which raises
            :class:`~gleaner.core.errors.ConfigurationError` here when no API
            key is configured.
        settings: Configuration to read defaults from (global config if omitted).
        default_call_config: Budget for extractors without their own
            ``call_config``. Defaults to ``settings.scheduler``.
        on_progress: Optional ``(current, total, status)`` callback.
    """

    def __init__(
        self,
        caller: StructuredCaller | None = None,
        *,
        settings: GleanerConfig | None = None,
        default_call_config: CallConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.settings = settings or config
        self.caller = (
            caller if caller is not None else LiteLLMStructuredCaller(self.settings.llm)
        )
        self.default_call_config = (
            default_call_config or self.settings.scheduler.to_call_config()
        )
        self.on_progress = on_progress

    def call_config_for(self, extractor: ExtractorConfig) -> CallConfig:
        return extractor.call_config or self.default_call_config

    def create_scheduler(
        self, extractor: ExtractorConfig, run_id: str | None = None
    ) -> CallScheduler:
        """Build the scheduler owned by one extraction run."""
        return CallScheduler(self.call_config_for(extractor), run_id=run_id)

    @log_calls
    async def extract_single(
        self, content: str, extractor: ExtractorConfig
    ) -> list[Any]:
        """Run the caller once on ``content`` without scheduling or retries."""
        try:
            return list(await self.caller(content, extractor))
        except ExtractionError:
            raise
        except Exception as exc:
            raise wrap_error(
                exc, f'Extraction failed for schema "{extractor.name}"'
            ) from exc

    async def extract_sequential(
        self, chunks: Sequence[Chunk], extractor: ExtractorConfig
    ) -> AggregateResult:
        """Process chunks one after another, in input order."""
        start_time = time.perf_counter()
        run_id = self._start_run("sequential", chunks, extractor)
        scheduler = self.create_scheduler(extractor, run_id)

        results: list[ChunkResult] = []
        total = len(chunks)
        for index, chunk in enumerate(chunks, start=1):
            self._report_progress(
                index, total, f"Processing chunk {chunk.sequence_number}"
            )
            results.append(
                await self._process_chunk(scheduler, chunk, extractor, run_id)
            )

        return self._aggregate(results, start_time, run_id, "sequential")

    async def extract_parallel(
        self, chunks: Sequence[Chunk], extractor: ExtractorConfig
    ) -> AggregateResult:
        """Submit every chunk at once; the scheduler caps real concurrency.

        ``chunk_results`` keep input order regardless of completion order.
        """
        start_time = time.perf_counter()
        run_id = self._start_run("parallel", chunks, extractor)
        scheduler = self.create_scheduler(extractor, run_id)
        total = len(chunks)

        async def run(index: int, chunk: Chunk) -> ChunkResult:
            self._report_progress(
                index, total, f"Processing chunk {chunk.sequence_number}"
            )
            return await self._process_chunk(scheduler, chunk, extractor, run_id)

        results = await asyncio.gather(
            *(run(index, chunk) for index, chunk in enumerate(chunks, start=1))
        )
        return self._aggregate(list(results), start_time, run_id, "parallel")

    async def extract_streaming(
        self, chunks: Sequence[Chunk], extractor: ExtractorConfig
    ) -> AsyncIterator[ChunkResult]:
        """Yield chunk results in completion order.

        Work starts when iteration starts. Closing the iterator early does not
        cancel chunks that were already submitted; they finish in the
        background.
        """
        run_id = self._start_run("streaming", chunks, extractor)
        async with aclosing(self._stream(chunks, extractor, run_id)) as stream:
            async for result in stream:
                yield result

    async def collect_streaming(
        self, chunks: Sequence[Chunk], extractor: ExtractorConfig
    ) -> AggregateResult:
        """Consume :meth:`extract_streaming` into an aggregate in completion order."""
        start_time = time.perf_counter()
        run_id = self._start_run("streaming", chunks, extractor)
        results = [
            result async for result in self._stream(chunks, extractor, run_id)
        ]
        return self._aggregate(results, start_time, run_id, "streaming")

    async def _stream(
        self, chunks: Sequence[Chunk], extractor: ExtractorConfig, run_id: str
    ) -> AsyncIterator[ChunkResult]:
        scheduler = self.create_scheduler(extractor, run_id)
        total = len(chunks)

        # Arena of pending work keyed by submission index
        arena: dict[int, asyncio.Task[ChunkResult]] = {}
        for task_id, chunk in enumerate(chunks):
            task = asyncio.create_task(
                self._process_chunk(scheduler, chunk, extractor, run_id),
                name=f"gleaner-chunk-{chunk.sequence_number}",
            )
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)
            arena[task_id] = task
        owners = {task: task_id for task_id, task in arena.items()}

        completed = 0
        while arena:
            done, _ = await asyncio.wait(
                arena.values(), return_when=asyncio.FIRST_COMPLETED
            )
            for task in sorted(done, key=owners.__getitem__):
                del arena[owners[task]]
                result = task.result()
                completed += 1
                self._report_progress(
                    completed, total, f"Completed chunk {result.sequence_number}"
                )
                yield result

    async def _process_chunk(
        self,
        scheduler: CallScheduler,
        chunk: Chunk,
        extractor: ExtractorConfig,
        run_id: str,
    ) -> ChunkResult:
        label = f"Chunk {chunk.sequence_number} extraction"
        try:
            items = await scheduler.execute(
                lambda: self.extract_single(chunk.content, extractor), label
            )
        except Exception as exc:
            error = wrap_error(exc, label)
            event_logger.error(
                f"{label} failed: {error.message}",
                component=__name__,
                run_id=run_id,
                metadata={
                    "sequence_number": chunk.sequence_number,
                    "error_kind": error.code,
                },
            )
            return ChunkResult(
                items=[],
                sequence_number=chunk.sequence_number,
                succeeded=False,
                error_message=error.message,
                error_kind=error.kind,
            )

        event_logger.info(
            f"{label} succeeded with {len(items)} item(s)",
            event_type=EventType.CHUNK_PROCESSING,
            component=__name__,
            run_id=run_id,
            metadata={
                "sequence_number": chunk.sequence_number,
                "item_count": len(items),
            },
        )
        return ChunkResult(
            items=items, sequence_number=chunk.sequence_number, succeeded=True
        )

    def _start_run(
        self, mode: str, chunks: Sequence[Chunk], extractor: ExtractorConfig
    ) -> str:
        run_id = str(uuid.uuid4())
        call_config = self.call_config_for(extractor)
        event_logger.info(
            f"Starting {mode} extraction of {len(chunks)} chunk(s) with {extractor.name}",
            event_type=EventType.EXTRACTION_START,
            priority=Priority.HIGH,
            component=__name__,
            run_id=run_id,
            metadata={
                "operation": mode,
                "extractor": extractor.name,
                "chunk_count": len(chunks),
                "max_concurrent": call_config.max_concurrent,
                "min_start_spacing": call_config.min_start_spacing,
            },
        )
        return run_id

    def _report_progress(self, current: int, total: int, status: str) -> None:
        if self.on_progress is not None:
            self.on_progress(current, total, status)

    def _aggregate(
        self,
        results: list[ChunkResult],
        start_time: float,
        run_id: str,
        mode: str,
    ) -> AggregateResult:
        collected = [item for result in results if result.succeeded for item in result.items]
        items = dedupe(collected)
        metrics = Metrics(
            total_items=len(items),
            items_before_dedup=len(collected),
            processing_duration_ms=int((time.perf_counter() - start_time) * 1000),
            average_confidence=average_confidence(items),
        )
        chunks_failed = sum(1 for result in results if not result.succeeded)

        event_logger.info(
            f"Finished {mode} extraction: {metrics.total_items} item(s), "
            f"{chunks_failed}/{len(results)} chunk(s) failed",
            event_type=EventType.EXTRACTION_COMPLETE,
            priority=Priority.HIGH,
            component=__name__,
            run_id=run_id,
            metadata={
                "operation": mode,
                "duration_ms": metrics.processing_duration_ms,
                "items_before_dedup": metrics.items_before_dedup,
                "total_items": metrics.total_items,
                "chunks_failed": chunks_failed,
            },
        )
        return AggregateResult(
            items=items,
            chunks_processed=len(results),
            chunks_failed=chunks_failed,
            chunk_results=results,
            metrics=metrics,
        )


__all__ = ["ExtractionPipeline", "ProgressCallback"]
