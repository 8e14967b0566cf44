"""
Built-in control-flow tools.

- transfer_to_agent: hand the conversation to another agent
- exit_loop: escalate, ending the enclosing loop
"""

from .base import Tool, ToolActions, ToolParameter, ToolResult

TRANSFER_TO_AGENT = "transfer_to_agent"
EXIT_LOOP = "exit_loop"


async def transfer_to_agent(agent_name: str) -> ToolResult:
    """Request a transfer to the named agent."""
    return ToolResult(
        output=f"Transferring to agent: {agent_name}",
        actions=ToolActions(transfer_to_agent=agent_name),
    )


async def exit_loop() -> ToolResult:
    """Request escalation out of the current loop."""
    return ToolResult(output="Exiting loop", actions=ToolActions(escalate=True))


def create_transfer_to_agent_tool() -> Tool:
    return Tool(
        name=TRANSFER_TO_AGENT,
        description=(
            "Transfer the question to another agent. Use this when you need "
            "to delegate to a specialized agent."
        ),
        parameters=[
            ToolParameter(
                name="agent_name",
                param_type="string",
                description="Name of the agent to transfer to",
                required=True,
            ),
        ],
        handler=transfer_to_agent,
    )


def create_exit_loop_tool() -> Tool:
    return Tool(
        name=EXIT_LOOP,
        description="Exit the current loop. Call this function only when you are instructed to do so.",
        parameters=[],
        handler=exit_loop,
    )
