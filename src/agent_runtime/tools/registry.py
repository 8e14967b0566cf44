"""
Tool registry and dispatcher.

``ToolRegistry.execute`` always returns a structured result: failures
become ``{"error": message}`` and interrupted executions become
``{"interrupted": True}``, so a tool can never abort the turn engine.
"""

import asyncio
from typing import Any, Iterable, Union

import structlog

from ..errors import InvocationCancelled
from ..llm.base import ToolDefinition
from .base import BaseTool, Tool, ToolActions, ToolContext, ToolResult

logger = structlog.get_logger()

AnyTool = Union[BaseTool, Tool]


def _normalize_output(output: Any) -> dict[str, Any]:
    if isinstance(output, dict):
        return output
    return {"result": output}


class ToolRegistry:
    """Registry for managing tools."""

    def __init__(self, tools: Iterable[AnyTool] | None = None):
        self._tools: dict[str, AnyTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: AnyTool) -> None:
        """Register a tool. A later tool with the same name replaces the earlier one."""
        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool_name=tool.name)

    def unregister(self, name: str) -> None:
        """Unregister a tool."""
        if name in self._tools:
            del self._tools[name]
            logger.debug("Tool unregistered", tool_name=name)

    def get(self, name: str) -> AnyTool | None:
        """Get a tool by exact name."""
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_definitions(self) -> list[ToolDefinition]:
        """Get all tool definitions for LLM."""
        return [tool.to_definition() for tool in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ToolContext,
    ) -> tuple[dict[str, Any], ToolActions]:
        """Execute a tool by name, returning (result, requested actions)."""
        tool = self.get(name)
        if tool is None:
            return {"error": f"Tool '{name}' not found"}, ToolActions()

        try:
            logger.info("Executing tool", tool_name=name, call_id=context.function_call_id, arguments=arguments)
            if context.cancellation is not None:
                output = await context.cancellation.run(tool.execute(arguments, context))
            else:
                output = await tool.execute(arguments, context)
        except InvocationCancelled:
            logger.warning("Tool interrupted", tool_name=name, call_id=context.function_call_id)
            return {"interrupted": True}, ToolActions()
        except asyncio.CancelledError:
            # Re-raise when our own task is being cancelled; only the tool's
            # internal cancellation degrades to an interrupted result.
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning("Tool interrupted", tool_name=name, call_id=context.function_call_id)
            return {"interrupted": True}, ToolActions()
        except Exception as e:
            logger.error("Tool execution error", tool_name=name, error=str(e))
            return {"error": str(e)}, ToolActions()

        if isinstance(output, ToolResult):
            result, actions = _normalize_output(output.output), output.actions
        else:
            result, actions = _normalize_output(output), ToolActions()

        logger.info(
            "Tool executed",
            tool_name=name,
            transfer_to_agent=actions.transfer_to_agent,
            escalate=actions.escalate,
        )
        return result, actions
