# src/gleaner/config/config.py
"""Configuration system for Gleaner."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gleaner.models.configuration import DEFAULT_CALL_CONFIG, CallConfig


class LLMConfig(BaseSettings):
    """Structured-generation provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GLEANER_LLM_", extra="ignore", populate_by_name=True
    )

    model: str = Field(default="gemini/gemini-2.5-flash")
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GLEANER_LLM_API_KEY", "GEMINI_API_KEY"),
    )
    api_base: str | None = Field(default=None)
    # Low temperature keeps structured extraction deterministic.
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)


class SchedulerConfig(BaseSettings):
    """Default call scheduling budget used when an extractor has no override."""

    model_config = SettingsConfigDict(env_prefix="GLEANER_SCHEDULER_", extra="ignore")

    max_concurrent: int = Field(default=DEFAULT_CALL_CONFIG.max_concurrent, ge=1)
    min_start_spacing: float = Field(
        default=DEFAULT_CALL_CONFIG.min_start_spacing, ge=0.0
    )
    max_retries: int = Field(default=DEFAULT_CALL_CONFIG.max_retries, ge=0)
    backoff_multiplier: float = Field(
        default=DEFAULT_CALL_CONFIG.backoff_multiplier, ge=1.0
    )

    def to_call_config(self) -> CallConfig:
        """Return these settings as an immutable :class:`CallConfig`."""
        return CallConfig(
            max_concurrent=self.max_concurrent,
            min_start_spacing=self.min_start_spacing,
            max_retries=self.max_retries,
            backoff_multiplier=self.backoff_multiplier,
        )


class ChunkingConfig(BaseSettings):
    """Chunk producer defaults."""

    model_config = SettingsConfigDict(env_prefix="GLEANER_CHUNKING_", extra="ignore")

    page_delimiter: str = Field(default="\n---PAGE---\n")
    max_chunk_size: int = Field(default=4000, ge=1)


class SystemConfig(BaseSettings):
    """System configuration settings."""

    model_config = SettingsConfigDict(env_prefix="GLEANER_", extra="ignore")

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="")
    log_file: str = Field(default="")
    log_include_trace: bool = Field(default=False)


class GleanerConfig(BaseModel):
    """Main configuration class."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load(cls) -> GleanerConfig:
        """Load configuration from environment variables."""
        return cls(
            llm=LLMConfig(),
            scheduler=SchedulerConfig(),
            chunking=ChunkingConfig(),
            system=SystemConfig(),
        )


# Global configuration instance
config = GleanerConfig.load()
