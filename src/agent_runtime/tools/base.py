"""
Base classes for tools.

Tools never mutate the runtime directly: an execution returns its output
together with the actions it requests (transfer, escalate, state delta).
"""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from ..llm.base import ToolDefinition

if TYPE_CHECKING:
    from ..agents.context import InvocationContext
    from ..cancellation import CancellationToken
    from ..sessions import Session, SessionState


@dataclass(frozen=True)
class ToolActions:
    """Actions a tool asks the runtime to perform."""

    transfer_to_agent: str | None = None
    escalate: bool = False
    state_delta: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Output of a tool execution plus the actions it requests."""

    output: Any = None
    actions: ToolActions = field(default_factory=ToolActions)


@dataclass(frozen=True)
class ToolContext:
    """What a running tool can see of its invocation."""

    session: "Session"
    invocation_id: str
    agent_name: str
    function_call_id: str | None = None
    branch: str | None = None
    cancellation: "CancellationToken | None" = None

    @property
    def state(self) -> "SessionState":
        return self.session.state


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    param_type: str  # string, integer, number, boolean, array, object
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None


@dataclass
class Tool:
    """
    Simple tool wrapper that can be created from a function.

    The handler receives the call arguments as keyword arguments, plus
    ``tool_context`` when its signature declares it. It may be sync or
    async and may return a ToolResult to request actions.
    """

    name: str
    description: str
    parameters: list[ToolParameter]
    handler: Callable[..., Any]

    def get_parameters_schema(self) -> dict[str, Any]:
        """Convert parameters to JSON Schema format."""
        properties = {}
        required = []

        for param in self.parameters:
            prop = {
                "type": param.param_type,
                "description": param.description,
            }
            if param.enum:
                prop["enum"] = param.enum
            if param.default is not None:
                prop["default"] = param.default

            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.get_parameters_schema(),
        )

    def _wants_context(self) -> bool:
        return "tool_context" in inspect.signature(self.handler).parameters

    async def execute(self, args: dict[str, Any], context: ToolContext) -> Any:
        """Execute the tool handler."""
        kwargs = dict(args)
        if self._wants_context():
            kwargs["tool_context"] = context
        result = self.handler(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


class BaseTool(ABC):
    """Base class for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Get the tool parameters schema (JSON Schema)."""
        pass

    @abstractmethod
    async def execute(self, args: dict[str, Any], context: ToolContext) -> Any:
        """Execute the tool with given arguments."""
        pass

    def to_definition(self) -> ToolDefinition:
        """Convert to a tool definition for LLM."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )


class ToolProvider(ABC):
    """Supplies tools per request, based on the invocation."""

    @abstractmethod
    def get_tools(self, context: "InvocationContext") -> list["BaseTool | Tool"]:
        pass
