"""
Agent hierarchy and transfer routing.

Every agent's ``run`` wraps its subclass-provided ``_run_impl`` and watches
the events flowing out of it:

1. The event is forwarded.
2. If the agent itself authored an event requesting a transfer, the target
   is looked up by name and run with the same context; its events are
   forwarded and this agent's sequence ends there. An unknown target
   yields one error event instead.
3. If the event escalates, no further events are produced.
"""

from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import AsyncIterator, Iterator

import structlog

from ..errors import AgentTreeError
from ..events import Event
from .context import InvocationContext

logger = structlog.get_logger()


class BaseAgent(ABC):
    """A named node in an agent tree."""

    def __init__(
        self,
        name: str,
        description: str = "",
        sub_agents: list["BaseAgent"] | None = None,
    ):
        if not name:
            raise AgentTreeError("Agent name must not be empty")
        self.name = name
        self.description = description
        self.parent_agent: BaseAgent | None = None
        self._sub_agents: list[BaseAgent] = []
        for agent in sub_agents or []:
            self.add_sub_agent(agent)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @property
    def sub_agents(self) -> tuple["BaseAgent", ...]:
        return tuple(self._sub_agents)

    @property
    def root_agent(self) -> "BaseAgent":
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    def add_sub_agent(self, agent: "BaseAgent") -> None:
        """Attach a child. An agent can only have one parent."""
        if agent.parent_agent is not None:
            raise AgentTreeError(
                f"Agent '{agent.name}' already has a parent '{agent.parent_agent.name}'. "
                "An agent can only have one parent."
            )
        root = self.root_agent
        for node in agent.walk():
            if root.find_agent(node.name) is not None:
                raise AgentTreeError(f"Duplicate agent name '{node.name}' in agent tree")
        agent.parent_agent = self
        self._sub_agents.append(agent)

    def walk(self) -> Iterator["BaseAgent"]:
        """Depth-first, self-first traversal of this subtree."""
        yield self
        for agent in self._sub_agents:
            yield from agent.walk()

    def find_agent(self, name: str) -> "BaseAgent | None":
        """Find an agent by exact name in this subtree, self first."""
        for agent in self.walk():
            if agent.name == name:
                return agent
        return None

    def find_sub_agent(self, name: str) -> "BaseAgent | None":
        """Find a descendant (excluding self) by exact name."""
        for agent in self._sub_agents:
            found = agent.find_agent(name)
            if found is not None:
                return found
        return None

    def resolve_transfer_target(self, name: str) -> "BaseAgent | None":
        """Resolve a transfer target: own subtree first, then the whole tree."""
        return self.find_agent(name) or self.root_agent.find_agent(name)

    async def run(self, context: InvocationContext) -> AsyncIterator[Event]:
        """Run this agent, routing transfers and stopping on escalation."""
        async with aclosing(self._run_impl(context)) as events:
            async for event in events:
                yield event

                if event.transfer_to and event.author == self.name:
                    async for transferred in self._transfer(event.transfer_to, context):
                        yield transferred
                    return

                if event.escalate:
                    logger.info("Agent escalated", agent=self.name, author=event.author)
                    return

    async def _transfer(self, target_name: str, context: InvocationContext) -> AsyncIterator[Event]:
        target = self.resolve_transfer_target(target_name)

        if target is None:
            logger.warning("Transfer target not found", agent=self.name, target=target_name)
            error_event = Event.from_text(
                author=self.name,
                text=f"Error: Cannot transfer to agent '{target_name}' - agent not found in hierarchy.",
                invocation_id=context.invocation_id,
                branch=context.branch,
                metadata={"error": "transfer_target_not_found"},
            )
            await context.append_event(error_event)
            yield error_event
            return

        logger.info("Transferring to agent", from_agent=self.name, to_agent=target.name)
        async with aclosing(target.run(context)) as transferred:
            async for event in transferred:
                yield event

    @abstractmethod
    def _run_impl(self, context: InvocationContext) -> AsyncIterator[Event]:
        """Produce this agent's own events. Implemented as an async generator."""
        pass
