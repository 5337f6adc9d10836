# src/gleaner/config/__init__.py
"""Configuration for Gleaner."""

from .config import (
    ChunkingConfig,
    GleanerConfig,
    LLMConfig,
    SchedulerConfig,
    SystemConfig,
    config,
)

__all__ = [
    "ChunkingConfig",
    "GleanerConfig",
    "LLMConfig",
    "SchedulerConfig",
    "SystemConfig",
    "config",
]
