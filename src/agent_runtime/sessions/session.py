"""
Session model: identity, scoped state and the append-only event log.
"""

import asyncio
import time
from dataclasses import dataclass, field

from ..events import Event
from .state import SessionState


@dataclass
class Session:
    """A conversation session owned by a session service."""

    app_name: str
    user_id: str
    id: str
    state: SessionState = field(default_factory=SessionState)
    events: list[Event] = field(default_factory=list)
    last_update_time: float = field(default_factory=time.time)
    _append_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    async def append_event(self, event: Event) -> Event:
        """Append an event to the log and merge its state delta.

        Appends are serialized so concurrent branches sharing the session
        keep a single total order. Partial events are logged but never
        change state.
        """
        async with self._append_lock:
            if not event.partial and event.actions.state_delta:
                self.state.apply_delta(event.actions.state_delta)
            self.events.append(event)
            self.last_update_time = max(self.last_update_time, event.timestamp)
        return event

    @property
    def event_count(self) -> int:
        return len(self.events)

    def events_for_invocation(self, invocation_id: str) -> list[Event]:
        return [e for e in self.events if e.invocation_id == invocation_id]
