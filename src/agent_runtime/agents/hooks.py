"""
Extension points of the turn engine: request processors and callbacks.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..events import Content, FunctionCall
from ..llm.base import LLMRequest, LLMResponse
from .context import InvocationContext


class RequestProcessor(ABC):
    """Transforms a model request before it is sent.

    Processors run in ascending ``priority`` on every request the engine
    builds and must return a request rather than mutate the one given.
    """

    priority: int = 100

    @abstractmethod
    async def process(self, request: LLMRequest, context: InvocationContext) -> LLMRequest:
        pass


class AgentCallbacks:
    """Lifecycle hooks for an LlmAgent. Override what you need."""

    async def before_model(self, context: InvocationContext, request: LLMRequest) -> Content | None:
        """Return content to answer in place of the model; no call is made or counted."""
        return None

    async def after_model(self, context: InvocationContext, response: LLMResponse) -> Content | None:
        """Return content to replace a single-shot model response."""
        return None

    async def on_tool_start(self, context: InvocationContext, call: FunctionCall) -> None:
        return None

    async def on_tool_end(
        self,
        context: InvocationContext,
        call: FunctionCall,
        result: dict[str, Any],
    ) -> None:
        return None
