"""
Sliding-window compaction of a session's event log.

After each completed invocation the service counts the distinct
invocations whose latest event is newer than the last compaction window.
Once that count reaches ``compaction_interval``, the window running from
``overlap_size`` invocations before the first new one through the latest
invocation is summarized and one marker event carrying the summary is
appended. Raw events are never removed.
"""

import asyncio
import uuid
import weakref

import structlog

from ..errors import ConfigurationError
from ..events import Content, Event, EventActions, EventCompaction
from ..sessions import Session
from .config import CompactionConfig

logger = structlog.get_logger()


class CompactionService:
    """Runs at most one compaction pass per session at a time."""

    def __init__(self):
        # Entries go away once no pass holds the lock
        self._locks: weakref.WeakValueDictionary[tuple[str, str, str], asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, session: Session) -> asyncio.Lock:
        key = (session.app_name, session.user_id, session.id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def run_compaction_if_needed(
        self,
        session: Session,
        config: CompactionConfig | None,
    ) -> Event | None:
        """Compact the session when enough new invocations accumulated.

        Returns the appended marker event, or None when nothing was done.
        A pass already running for the session makes this call a no-op.
        """
        if config is None or not config.enabled:
            return None

        lock = self._lock_for(session)
        if lock.locked():
            logger.debug("Compaction already running, skipping", session_id=session.id)
            return None

        async with lock:
            return await self._compact(session, config)

    def select_window(self, events: list[Event], config: CompactionConfig) -> list[Event]:
        """Events to summarize in the next pass, or an empty list."""
        if not events:
            return []

        last_compacted_end = 0.0
        for event in reversed(events):
            if event.actions.compaction is not None:
                last_compacted_end = event.actions.compaction.end_timestamp
                break

        # Insertion order of this dict is first-appearance order of invocations
        latest_timestamps: dict[str, float] = {}
        for event in events:
            if not event.invocation_id or event.actions.compaction is not None:
                continue
            previous = latest_timestamps.get(event.invocation_id, event.timestamp)
            latest_timestamps[event.invocation_id] = max(previous, event.timestamp)

        invocation_ids = list(latest_timestamps)
        new_ids = [i for i in invocation_ids if latest_timestamps[i] > last_compacted_end]

        if len(new_ids) < config.compaction_interval:
            return []

        start_index = max(0, invocation_ids.index(new_ids[0]) - config.overlap_size)
        start_id = invocation_ids[start_index]
        end_id = new_ids[-1]

        first = next(i for i, e in enumerate(events) if e.invocation_id == start_id)
        last = max(i for i, e in enumerate(events) if e.invocation_id == end_id)

        return [e for e in events[first:last + 1] if e.actions.compaction is None]

    async def _compact(self, session: Session, config: CompactionConfig) -> Event | None:
        window = self.select_window(list(session.events), config)
        if not window:
            return None

        if config.summarizer is None:
            raise ConfigurationError("CompactionConfig.summarizer must be set before running compaction")

        logger.info(
            "Starting compaction",
            session_id=session.id,
            event_count=len(window),
        )

        summary = await config.summarizer.summarize(window)

        marker = Event(
            author="user",
            invocation_id=f"e-{uuid.uuid4()}",
            actions=EventActions(
                compaction=EventCompaction(
                    start_timestamp=window[0].timestamp,
                    end_timestamp=window[-1].timestamp,
                    compacted_content=Content.from_text(summary, role="model"),
                ),
            ),
        )
        await session.append_event(marker)

        logger.info(
            "Compaction complete",
            session_id=session.id,
            start_timestamp=window[0].timestamp,
            end_timestamp=window[-1].timestamp,
        )
        return marker
