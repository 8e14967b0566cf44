"""
In-memory session service.

Keeps sessions keyed by (app, user, session id) plus the app- and
user-scoped state shared by every session of that app/user. Suitable for
tests, development and single-process hosts.
"""

import uuid
from typing import Any

import structlog

from ..errors import SessionExistsError, SessionNotFoundError
from ..events import Event
from .session import Session
from .state import SessionState, split_state_delta

logger = structlog.get_logger()


class InMemorySessionService:
    """Session store held in process memory."""

    def __init__(self):
        self._sessions: dict[str, dict[str, dict[str, Session]]] = {}
        self._app_state: dict[str, dict[str, Any]] = {}
        self._user_state: dict[str, dict[str, dict[str, Any]]] = {}

    def _state_for(self, app_name: str, user_id: str, session_state: dict[str, Any]) -> SessionState:
        app_state = self._app_state.setdefault(app_name, {})
        user_state = self._user_state.setdefault(app_name, {}).setdefault(user_id, {})
        return SessionState(session=session_state, app=app_state, user=user_state)

    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Create a session, routing initial state to its scopes."""
        session_id = session_id.strip() if session_id and session_id.strip() else str(uuid.uuid4())

        if await self.get_session(app_name, user_id, session_id) is not None:
            raise SessionExistsError(f"Session with id '{session_id}' already exists.")

        app_delta, user_delta, session_delta = split_state_delta(state or {})
        session_state = self._state_for(app_name, user_id, session_delta)
        session_state.apply_delta(app_delta)
        session_state.apply_delta(user_delta)

        session = Session(
            app_name=app_name,
            user_id=user_id,
            id=session_id,
            state=session_state,
        )
        self._sessions.setdefault(app_name, {}).setdefault(user_id, {})[session_id] = session

        logger.info("Created new session", app_name=app_name, user_id=user_id, session_id=session_id)
        return session

    async def get_session(self, app_name: str, user_id: str, session_id: str) -> Session | None:
        """Get a session, or None if it does not exist."""
        return self._sessions.get(app_name, {}).get(user_id, {}).get(session_id)

    async def list_sessions(self, app_name: str, user_id: str) -> list[Session]:
        """List a user's sessions for an app."""
        return list(self._sessions.get(app_name, {}).get(user_id, {}).values())

    async def delete_session(self, app_name: str, user_id: str, session_id: str) -> None:
        """Delete a session. App and user state survive."""
        user_sessions = self._sessions.get(app_name, {}).get(user_id, {})
        if session_id not in user_sessions:
            raise SessionNotFoundError(session_id)
        del user_sessions[session_id]
        logger.info("Session deleted", app_name=app_name, user_id=user_id, session_id=session_id)

    async def append_event(self, session: Session, event: Event) -> Event:
        """Append an event to a session's log."""
        return await session.append_event(event)
