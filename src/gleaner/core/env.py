# src/gleaner/core/env.py
"""Environment configuration utilities."""

from __future__ import annotations

from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from gleaner.config import GleanerConfig, config


def load_env(dotenv_path: str | Path | None = None) -> GleanerConfig:
    """Load a ``.env`` file and refresh the global configuration from it.

    Without ``dotenv_path`` the nearest ``.env`` above the working directory
    is used. Variables already set in the process environment win. The global
    :data:`gleaner.config.config` is updated in place, so modules that read it
    (logging setup, chunkers) see the new values.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    fresh = GleanerConfig.load()
    for section in GleanerConfig.model_fields:
        setattr(config, section, getattr(fresh, section))
    return config


__all__ = ["load_env"]
