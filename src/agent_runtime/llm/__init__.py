"""
LLM module - the model capability consumed by the turn engine.

Providers:
- OpenAI GPT (native SDK, also OpenAI-compatible endpoints)
- Anthropic Claude (native SDK)
"""

from .base import (
    BaseLLM,
    GenerationConfig,
    LLMRequest,
    LLMResponse,
    ToolDefinition,
)
from .anthropic import AnthropicLLM
from .openai import OpenAILLM
from .factory import create_llm

__all__ = [
    "BaseLLM",
    "GenerationConfig",
    "LLMRequest",
    "LLMResponse",
    "ToolDefinition",
    "AnthropicLLM",
    "OpenAILLM",
    "create_llm",
]
