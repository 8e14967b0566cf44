"""
Base classes for LLM providers.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal

from ..events import Content, FunctionCall, Part


@dataclass
class ToolDefinition:
    """Definition of a tool that the LLM can use."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class GenerationConfig:
    """Sampling parameters for one request. Unset fields use provider defaults."""

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    stop: list[str] | None = None


@dataclass
class LLMRequest:
    """A model request built by the turn engine."""

    system_instruction: str | None = None
    contents: list[Content] = field(default_factory=list)
    tools: list[ToolDefinition] | None = None
    tool_choice: Literal["auto", "none", "required"] | None = None
    config: GenerationConfig | None = None

    def with_tools(self, tools: list[ToolDefinition]) -> "LLMRequest":
        """Copy of this request with a different tool list."""
        return dataclasses.replace(
            self,
            tools=list(tools) or None,
            tool_choice="auto" if tools else None,
        )

    def with_appended_instruction(self, instruction: str) -> "LLMRequest":
        """Copy of this request with extra text appended to the system instruction."""
        if self.system_instruction:
            combined = f"{self.system_instruction}\n\n{instruction}"
        else:
            combined = instruction
        return dataclasses.replace(self, system_instruction=combined)


@dataclass
class LLMResponse:
    """Response (or streamed fragment) from an LLM."""

    text: str = ""
    reasoning: str = ""
    function_calls: list[FunctionCall] = field(default_factory=list)
    finish_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    content: Content | None = None
    raw_response: Any = None

    def to_content(self) -> Content:
        """Content for this response, built from its fields when not given."""
        if self.content is not None:
            return self.content
        parts: list[Part] = []
        if self.reasoning:
            parts.append(Part(reasoning=self.reasoning))
        if self.text:
            parts.append(Part(text=self.text))
        for call in self.function_calls:
            parts.append(Part(function_call=call))
        return Content(role="model", parts=tuple(parts))


class BaseLLM(ABC):
    """Base class for LLM providers."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _sampling(self, request: LLMRequest) -> tuple[int, float]:
        """Resolve max tokens and temperature for a request."""
        config = request.config or GenerationConfig()
        max_tokens = config.max_tokens if config.max_tokens is not None else self.max_tokens
        temperature = config.temperature if config.temperature is not None else self.temperature
        return max_tokens, temperature

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate a single complete response."""
        pass

    @abstractmethod
    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMResponse]:
        """Stream response fragments as they arrive."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        pass
