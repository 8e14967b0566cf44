"""
Event records - the unit of the append-only session log.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .content import Content, FunctionCall, FunctionResponse, Role


@dataclass(frozen=True)
class EventCompaction:
    """Summary of a compacted range of the event log."""

    start_timestamp: float
    end_timestamp: float
    compacted_content: Content


@dataclass(frozen=True)
class EventActions:
    """Side effects an event signals to the runtime."""

    escalate: bool = False
    transfer_to: str | None = None
    state_delta: dict[str, Any] = field(default_factory=dict)
    compaction: EventCompaction | None = None

    @property
    def is_empty(self) -> bool:
        return (
            not self.escalate
            and not self.transfer_to
            and not self.state_delta
            and self.compaction is None
        )


@dataclass(frozen=True)
class Event:
    """Immutable record of something an agent or tool produced or signaled."""

    author: str
    content: Content | None = None
    actions: EventActions = field(default_factory=EventActions)
    partial: bool = False
    invocation_id: str = ""
    branch: str | None = None
    timestamp: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_text(
        cls,
        author: str,
        text: str,
        role: Role = "model",
        **kwargs: Any,
    ) -> "Event":
        """Create a single-text-part event."""
        return cls(author=author, content=Content.from_text(text, role), **kwargs)

    @property
    def text(self) -> str:
        return self.content.text if self.content else ""

    @property
    def function_calls(self) -> list[FunctionCall]:
        return self.content.function_calls if self.content else []

    @property
    def function_responses(self) -> list[FunctionResponse]:
        return self.content.function_responses if self.content else []

    @property
    def transfer_to(self) -> str | None:
        return self.actions.transfer_to or None

    @property
    def escalate(self) -> bool:
        return self.actions.escalate

    def is_final_response(self) -> bool:
        """Whether this event is a complete model answer with nothing pending."""
        if self.partial or self.actions.compaction is not None:
            return False
        return not self.function_calls and not self.function_responses
