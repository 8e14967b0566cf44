"""
LLM factory for creating provider instances.

Supports: OpenAI GPT (and OpenAI-compatible endpoints), Anthropic Claude.
"""

from ..config import LLMConfig, Settings
from ..errors import ConfigurationError
from .anthropic import AnthropicLLM
from .base import BaseLLM
from .openai import OpenAILLM


def create_llm(config: LLMConfig | None = None, settings: Settings | None = None) -> BaseLLM:
    """Create an LLM instance based on configuration.

    Provider routing:
    - openai -> OpenAILLM (native OpenAI SDK, honours base_url)
    - anthropic -> AnthropicLLM (native Anthropic SDK)
    """
    if config is None:
        if settings is None:
            from ..config import get_settings
            settings = get_settings()
        config = settings.get_llm_config()

    provider = config.provider

    if provider == "openai":
        return OpenAILLM(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    elif provider == "anthropic":
        return AnthropicLLM(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    else:
        raise ConfigurationError(f"Unknown LLM provider: {provider}")
