"""
Tests for configuration module.
"""

import os
from unittest.mock import patch

import pytest

from agent_runtime.agents import StreamingMode
from agent_runtime.compaction import CompactionConfig
from agent_runtime.config import LLMConfig, Settings
from agent_runtime.errors import ConfigurationError


def test_settings_default_values():
    """Test that settings have sensible defaults."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.app_name == "agent-runtime"
        assert settings.default_provider == "openai"
        assert settings.max_llm_calls == 500
        assert settings.streaming_mode == "none"
        assert settings.compaction_enabled is False


def test_settings_from_env():
    """Test loading settings from environment variables."""
    env = {
        "ANTHROPIC_API_KEY": "test_anthropic_key",
        "DEFAULT_MODEL": "claude-opus-4",
        "MAX_LLM_CALLS": "25",
        "STREAMING_MODE": "SSE",
    }

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

        assert settings.anthropic_api_key == "test_anthropic_key"
        assert settings.default_model == "claude-opus-4"
        assert settings.max_llm_calls == 25
        assert settings.streaming_mode == "sse"


def test_get_llm_config():
    """Test getting LLM configuration."""
    env = {
        "ANTHROPIC_API_KEY": "test_key",
        "DEFAULT_PROVIDER": "anthropic",
        "DEFAULT_MODEL": "claude-sonnet-4-20250514",
    }

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)
        config = settings.get_llm_config()

        assert isinstance(config, LLMConfig)
        assert config.provider == "anthropic"
        assert config.api_key == "test_key"
        assert "claude" in config.model.lower()


def test_get_llm_config_openai():
    """Test getting OpenAI LLM configuration for a non-default provider."""
    env = {
        "OPENAI_API_KEY": "test_openai_key",
        "DEFAULT_PROVIDER": "anthropic",
        "DEFAULT_MODEL": "claude-opus-4",
    }

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)
        config = settings.get_llm_config("openai")

        assert config.provider == "openai"
        assert config.api_key == "test_openai_key"
        assert "gpt" in config.model.lower()


def test_get_run_config_without_compaction():
    """Test the run config mirrors invocation settings."""
    env = {"MAX_LLM_CALLS": "7", "STREAMING_MODE": "sse"}

    with patch.dict(os.environ, env, clear=True):
        run_config = Settings(_env_file=None).get_run_config()

        assert run_config.max_llm_calls == 7
        assert run_config.streaming_mode == StreamingMode.SSE
        assert run_config.compaction is None


def test_get_run_config_with_compaction():
    """Test enabling compaction attaches a config with the summarizer."""
    env = {"COMPACTION_ENABLED": "true", "COMPACTION_INTERVAL": "4", "COMPACTION_OVERLAP": "1"}
    summarizer = object()

    with patch.dict(os.environ, env, clear=True):
        run_config = Settings(_env_file=None).get_run_config(summarizer=summarizer)

        assert isinstance(run_config.compaction, CompactionConfig)
        assert run_config.compaction.compaction_interval == 4
        assert run_config.compaction.overlap_size == 1
        assert run_config.compaction.summarizer is summarizer


def test_get_run_config_invalid_compaction():
    """Test invalid compaction bounds are rejected."""
    env = {"COMPACTION_ENABLED": "true", "COMPACTION_INTERVAL": "2", "COMPACTION_OVERLAP": "5"}

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

        with pytest.raises(ConfigurationError):
            settings.get_run_config(summarizer=object())


def test_get_run_config_compaction_requires_summarizer():
    """Test enabling compaction without a summarizer fails up front."""
    env = {"COMPACTION_ENABLED": "true"}

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

        with pytest.raises(ConfigurationError, match="no summarizer"):
            settings.get_run_config()
