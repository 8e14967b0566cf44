"""
Sessions module - scoped state and the per-session event log.
"""

from .session import Session
from .service import InMemorySessionService
from .state import APP_PREFIX, USER_PREFIX, SessionState

__all__ = [
    "Session",
    "InMemorySessionService",
    "SessionState",
    "APP_PREFIX",
    "USER_PREFIX",
]
