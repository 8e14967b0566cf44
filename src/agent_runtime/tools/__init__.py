"""
Tools module - tool model, registry/dispatcher and built-in tools.
"""

from .base import (
    BaseTool,
    Tool,
    ToolActions,
    ToolContext,
    ToolParameter,
    ToolProvider,
    ToolResult,
)
from .registry import ToolRegistry
from .builtin import (
    EXIT_LOOP,
    TRANSFER_TO_AGENT,
    create_exit_loop_tool,
    create_transfer_to_agent_tool,
)

__all__ = [
    "BaseTool",
    "Tool",
    "ToolActions",
    "ToolContext",
    "ToolParameter",
    "ToolProvider",
    "ToolResult",
    "ToolRegistry",
    "EXIT_LOOP",
    "TRANSFER_TO_AGENT",
    "create_exit_loop_tool",
    "create_transfer_to_agent_tool",
]
