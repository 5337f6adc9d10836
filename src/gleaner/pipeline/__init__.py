# src/gleaner/pipeline/__init__.py
"""Extraction orchestration."""

from .orchestrator import ExtractionPipeline, ProgressCallback

__all__ = ["ExtractionPipeline", "ProgressCallback"]
