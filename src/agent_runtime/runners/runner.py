"""
Runner - drives invocations of a root agent against a session service.

For each invocation the runner:
1. Gets or creates the session
2. Appends the user's message as a user event
3. Streams the root agent's events to the caller
4. Runs compaction once the agent has finished
"""

from contextlib import aclosing
from typing import Any, AsyncIterator

import structlog

from ..agents import BaseAgent, InvocationContext, RunConfig, new_invocation_id
from ..cancellation import CancellationToken
from ..compaction import CompactionService
from ..errors import SessionNotFoundError
from ..events import Content, Event
from ..sessions import InMemorySessionService, Session

logger = structlog.get_logger()


class Runner:
    """Runs a root agent for users and sessions of one app."""

    def __init__(
        self,
        agent: BaseAgent,
        app_name: str,
        session_service: InMemorySessionService,
        run_config: RunConfig | None = None,
        compaction_service: CompactionService | None = None,
    ):
        self.agent = agent
        self.app_name = app_name
        self.session_service = session_service
        self.run_config = run_config or RunConfig()
        self.compaction_service = compaction_service or CompactionService()

    async def _get_or_create_session(
        self,
        user_id: str,
        session_id: str,
        state: dict[str, Any] | None,
    ) -> Session:
        session = await self.session_service.get_session(self.app_name, user_id, session_id)
        if session is None:
            return await self.session_service.create_session(
                self.app_name, user_id, state=state, session_id=session_id
            )
        if state:
            session.state.apply_delta(state)
        return session

    def _new_context(
        self,
        session: Session,
        new_message: str | Content | None,
        cancellation: CancellationToken | None,
    ) -> InvocationContext:
        if isinstance(new_message, str):
            new_message = Content.from_text(new_message, role="user")
        return InvocationContext(
            session=session,
            invocation_id=new_invocation_id(),
            user_content=new_message,
            run_config=self.run_config,
            cancellation=cancellation or CancellationToken(),
        )

    async def _invoke(self, context: InvocationContext) -> AsyncIterator[Event]:
        session = context.session
        if context.user_content is not None:
            await self.session_service.append_event(
                session,
                Event(
                    author="user",
                    content=context.user_content,
                    invocation_id=context.invocation_id,
                ),
            )

        logger.info(
            "Starting invocation",
            agent=self.agent.name,
            session_id=session.id,
            invocation_id=context.invocation_id,
        )

        async with aclosing(self.agent.run(context)) as events:
            async for event in events:
                yield event

        logger.info(
            "Invocation complete",
            session_id=session.id,
            invocation_id=context.invocation_id,
            llm_calls=context.llm_calls.count,
        )
        await self.compaction_service.run_compaction_if_needed(session, self.run_config.compaction)

    async def run(
        self,
        user_id: str,
        session_id: str,
        new_message: str | Content,
        state: dict[str, Any] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[Event]:
        """Run one invocation for a user message, yielding the agent's events.

        Args:
            user_id: Owner of the session
            session_id: Session to continue; created when missing
            new_message: The user's message
            state: Initial state for a new session, or a delta merged into
                an existing one
            cancellation: Token the caller can use to cancel the invocation
        """
        session = await self._get_or_create_session(user_id, session_id, state)
        context = self._new_context(session, new_message, cancellation)

        async with aclosing(self._invoke(context)) as events:
            async for event in events:
                yield event

    async def rewind(
        self,
        user_id: str,
        session_id: str,
        from_event_index: int,
        new_message: str | Content | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[Event]:
        """Replay the log through ``from_event_index``, then continue.

        Logged events ``0..from_event_index`` are yielded first, followed
        by the events of a new invocation.
        """
        session = await self.session_service.get_session(self.app_name, user_id, session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found for user '{user_id}'")

        if not 0 <= from_event_index < len(session.events):
            raise IndexError(
                f"Event index {from_event_index} out of range (0-{len(session.events) - 1})"
            )

        for event in session.events[:from_event_index + 1]:
            yield event

        context = self._new_context(session, new_message, cancellation)
        async with aclosing(self._invoke(context)) as events:
            async for event in events:
                yield event


class InMemoryRunner(Runner):
    """Runner backed by an in-memory session service."""

    def __init__(
        self,
        agent: BaseAgent,
        app_name: str = "InMemoryRunner",
        run_config: RunConfig | None = None,
    ):
        super().__init__(
            agent=agent,
            app_name=app_name,
            session_service=InMemorySessionService(),
            run_config=run_config,
        )
