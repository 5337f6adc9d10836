# scripts/extract_document.py
"""Chunk a text file and run one extraction mode over it."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.console import Console

from gleaner.core.chunking import chunk_by_size, split_into_pages
from gleaner.core.env import load_env
from gleaner.core.errors import ConfigurationError
from gleaner.core.items import to_plain
from gleaner.core.logging import init_logging
from gleaner.core.logs import get_logger
from gleaner.extractors import EXTRACTORS
from gleaner.models import AggregateResult, Chunk, ExtractorConfig
from gleaner.pipeline import ExtractionPipeline

logger = get_logger(__name__)
console = Console()


def _progress(current: int, total: int, status: str) -> None:
    console.print(f"[dim][{current}/{total}][/dim] {status}")


async def run(
    pipeline: ExtractionPipeline,
    chunks: list[Chunk],
    extractor: ExtractorConfig,
    mode: str,
) -> AggregateResult:
    if mode == "sequential":
        return await pipeline.extract_sequential(chunks, extractor)
    if mode == "parallel":
        return await pipeline.extract_parallel(chunks, extractor)
    return await pipeline.collect_streaming(chunks, extractor)


def main() -> None:  # pragma: no cover - script entry
    # Load .env first so argument defaults and logging see its values
    settings = load_env()

    parser = argparse.ArgumentParser(description="Extract structured items from a text file")
    parser.add_argument("path", type=Path, help="Text file to extract from")
    parser.add_argument(
        "--extractor", choices=sorted(EXTRACTORS), default="invoice",
        help="Bundled extractor to use",
    )
    parser.add_argument(
        "--mode", choices=("sequential", "parallel", "streaming"), default="sequential",
        help="Execution strategy",
    )
    parser.add_argument(
        "--pages", action="store_true",
        help="Split on the page delimiter instead of by size",
    )
    parser.add_argument(
        "--max-chunk-size", type=int, default=settings.chunking.max_chunk_size,
        help="Maximum characters per chunk when splitting by size",
    )
    args = parser.parse_args()

    init_logging()

    if not args.path.exists():
        console.print(f"[red]File not found: {args.path}[/red]")
        sys.exit(1)

    text = args.path.read_text(encoding="utf-8")
    chunks = split_into_pages(text) if args.pages else chunk_by_size(text, args.max_chunk_size)
    extractor = EXTRACTORS[args.extractor]

    try:
        pipeline = ExtractionPipeline(settings=settings, on_progress=_progress)
    except ConfigurationError as e:
        logger.error("Cannot start extraction: %s", e)
        sys.exit(2)

    result = asyncio.run(run(pipeline, chunks, extractor, args.mode))

    for chunk_result in result.chunk_results:
        if not chunk_result.succeeded:
            console.print(
                f"[yellow]Chunk {chunk_result.sequence_number} failed "
                f"({chunk_result.error_kind.value if chunk_result.error_kind else 'unknown'}): "
                f"{chunk_result.error_message}[/yellow]"
            )
    console.print(
        f"Extracted {result.metrics.total_items} item(s) "
        f"({result.metrics.items_before_dedup} before dedup) from "
        f"{result.chunks_processed} chunk(s) in {result.metrics.processing_duration_ms}ms"
    )
    console.print_json(json.dumps([to_plain(item) for item in result.items], default=str))


if __name__ == "__main__":  # pragma: no cover - CLI execution
    main()
