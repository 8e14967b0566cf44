"""
Structural agents composing sub-agents without a model of their own.

- SequentialAgent: runs sub-agents in order with the same context
- LoopAgent: repeats the sequence until escalation or max_iterations
- ParallelAgent: runs sub-agents concurrently on derived branches
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator

import structlog

from ..events import Event
from .base import BaseAgent
from .context import InvocationContext

logger = structlog.get_logger()


class SequentialAgent(BaseAgent):
    """Executes sub-agents one after another, stopping on escalation."""

    async def _run_impl(self, context: InvocationContext) -> AsyncIterator[Event]:
        for agent in self.sub_agents:
            async with aclosing(agent.run(context)) as events:
                async for event in events:
                    yield event
                    if event.escalate:
                        return


class LoopAgent(BaseAgent):
    """Executes sub-agents in a loop until one escalates or the iteration cap is hit."""

    def __init__(
        self,
        name: str,
        description: str = "",
        sub_agents: list[BaseAgent] | None = None,
        max_iterations: int | None = None,
    ):
        super().__init__(name=name, description=description, sub_agents=sub_agents)
        self.max_iterations = max_iterations

    async def _run_impl(self, context: InvocationContext) -> AsyncIterator[Event]:
        iteration = 0
        while self.max_iterations is None or iteration < self.max_iterations:
            iteration += 1
            logger.debug("Loop iteration", agent=self.name, iteration=iteration)

            for agent in self.sub_agents:
                async with aclosing(agent.run(context)) as events:
                    async for event in events:
                        yield event
                        if event.escalate:
                            return

            if context.is_cancelled:
                return


_BRANCH_DONE = object()


class ParallelAgent(BaseAgent):
    """Executes sub-agents concurrently.

    Each sub-agent runs on its own branch (``<branch>.<agent name>``) but
    shares the session, call budget and cancellation token. Events are
    forwarded as they arrive; ordering is preserved within a branch only.
    """

    def _branch_for(self, context: InvocationContext, agent: BaseAgent) -> str:
        return f"{context.branch}.{agent.name}" if context.branch else agent.name

    async def _run_impl(self, context: InvocationContext) -> AsyncIterator[Event]:
        queue: asyncio.Queue = asyncio.Queue()

        async def _drive(agent: BaseAgent) -> None:
            branch_context = context.with_branch(self._branch_for(context, agent))
            try:
                async with aclosing(agent.run(branch_context)) as events:
                    async for event in events:
                        await queue.put(event)
            finally:
                queue.put_nowait(_BRANCH_DONE)

        tasks = [
            asyncio.create_task(_drive(agent), name=f"{self.name}:{agent.name}")
            for agent in self.sub_agents
        ]

        try:
            remaining = len(tasks)
            while remaining:
                item = await queue.get()
                if item is _BRANCH_DONE:
                    remaining -= 1
                    continue
                yield item
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)

        errors = []
        for agent, result in zip(self.sub_agents, results):
            if isinstance(result, Exception):
                logger.error("Parallel branch failed", agent=self.name, branch=agent.name, error=str(result))
                errors.append(result)
        if errors:
            raise errors[0]
