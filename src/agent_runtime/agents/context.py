"""
Invocation context and run configuration.

A context is created once per top-level invocation. Derived contexts
(``with_branch``, ``with_user_input``) share the session, the model call
counter and the cancellation token with their origin, so a transfer chain
or a set of parallel branches draws from one call budget.
"""

import dataclasses
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from ..cancellation import CancellationToken
from ..errors import LLMCallsLimitExceededError
from ..events import Content, Event
from ..sessions import Session

if TYPE_CHECKING:
    from ..compaction import CompactionConfig

logger = structlog.get_logger()

DEFAULT_MAX_LLM_CALLS = 500


class StreamingMode(str, Enum):
    """How model responses are received."""
    NONE = "none"  # one complete response per call
    SSE = "sse"    # incremental fragments


@dataclass
class RunConfig:
    """Configuration for one invocation.

    ``max_llm_calls <= 0`` allows an unbounded number of model calls.
    """

    max_llm_calls: int = DEFAULT_MAX_LLM_CALLS
    streaming_mode: StreamingMode = StreamingMode.NONE
    compaction: "CompactionConfig | None" = None


class LLMCallCounter:
    """Thread-safe model call counter shared by reference."""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def increment(self) -> int:
        with self._lock:
            self._count += 1
            return self._count


def new_invocation_id() -> str:
    return f"e-{uuid.uuid4()}"


@dataclass(frozen=True)
class InvocationContext:
    """Everything one invocation of an agent tree runs against."""

    session: Session
    invocation_id: str = field(default_factory=new_invocation_id)
    branch: str | None = None
    user_content: Content | None = None
    run_config: RunConfig = field(default_factory=RunConfig)
    llm_calls: LLMCallCounter = field(default_factory=LLMCallCounter, compare=False)
    cancellation: CancellationToken = field(default_factory=CancellationToken, compare=False)

    @property
    def user_input(self) -> str | None:
        """Text of the current turn's user content."""
        return self.user_content.text if self.user_content is not None else None

    def with_branch(self, branch: str) -> "InvocationContext":
        return dataclasses.replace(self, branch=branch)

    def with_user_input(self, user_input: str | Content) -> "InvocationContext":
        if isinstance(user_input, str):
            user_input = Content.from_text(user_input, role="user")
        return dataclasses.replace(self, user_content=user_input)

    def increment_and_enforce_llm_calls_limit(self) -> int:
        """Count one model call; raise once the count exceeds the budget."""
        count = self.llm_calls.increment()
        limit = self.run_config.max_llm_calls
        if limit > 0 and count > limit:
            logger.error(
                "LLM call limit exceeded",
                invocation_id=self.invocation_id,
                limit=limit,
            )
            raise LLMCallsLimitExceededError(limit)
        return count

    def cancel(self) -> None:
        """Request cooperative cancellation of the invocation."""
        self.cancellation.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self.cancellation.is_cancelled

    async def append_event(self, event: Event) -> Event:
        """Append an event produced by this invocation to the session log."""
        return await self.session.append_event(event)
