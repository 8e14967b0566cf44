"""
Configuration management for agent-runtime

Uses pydantic-settings for environment variable parsing and validation.
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .agents.context import RunConfig
    from .compaction import BaseEventSummarizer


class LLMConfig(BaseSettings):
    """Configuration for a single LLM provider."""

    model_config = SettingsConfigDict(extra="ignore")

    provider: Literal["openai", "anthropic"] = "openai"
    model: str = "gpt-4o"
    api_key: str = ""
    base_url: str | None = None
    max_tokens: int = 4096
    temperature: float = 0.7


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    app_name: str = "agent-runtime"
    debug: bool = False
    log_level: str = "INFO"

    # LLM Providers (API Keys)
    openai_api_key: str = Field(default="", description="OpenAI API key")
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")

    # Default model settings
    default_provider: Literal["openai", "anthropic"] = "openai"
    default_model: str = "gpt-4o"
    max_tokens: int = 4096
    temperature: float = 0.7

    # Invocation limits
    max_llm_calls: int = Field(
        default=500,
        description="Max model calls per invocation; <= 0 disables the limit",
    )
    streaming_mode: Literal["none", "sse"] = Field(
        default="none",
        description="Model response mode: single-shot or server-sent fragments",
    )

    # Compaction
    compaction_enabled: bool = Field(default=False, description="Enable event log compaction")
    compaction_interval: int = Field(default=10, description="New invocations before compacting")
    compaction_overlap: int = Field(default=2, description="Invocations re-summarized from the previous window")

    @field_validator("streaming_mode", mode="before")
    @classmethod
    def normalize_streaming_mode(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    def get_llm_config(self, provider: str | None = None) -> LLMConfig:
        """Get LLM configuration for a provider."""
        provider = provider or self.default_provider

        api_key_map = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }

        model_map = {
            "openai": "gpt-4o",
            "anthropic": "claude-sonnet-4-20250514",
        }

        model = self.default_model if provider == self.default_provider else None

        return LLMConfig(
            provider=provider,  # type: ignore
            model=model or model_map.get(provider, self.default_model),
            api_key=api_key_map.get(provider, ""),
            base_url=None,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    def get_run_config(self, summarizer: "BaseEventSummarizer | None" = None) -> "RunConfig":
        """Build the per-invocation run configuration."""
        from .agents.context import RunConfig, StreamingMode
        from .compaction import CompactionConfig

        compaction = None
        if self.compaction_enabled:
            if summarizer is None:
                raise ConfigurationError("Compaction is enabled but no summarizer was given")
            compaction = CompactionConfig(
                compaction_interval=self.compaction_interval,
                overlap_size=self.compaction_overlap,
                summarizer=summarizer,
            )

        return RunConfig(
            max_llm_calls=self.max_llm_calls,
            streaming_mode=StreamingMode(self.streaming_mode),
            compaction=compaction,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
