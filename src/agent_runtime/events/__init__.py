"""
Events module - the session event log model.
"""

from .content import (
    HISTORY_ROLES,
    Content,
    FunctionCall,
    FunctionResponse,
    Part,
    Role,
)
from .event import Event, EventActions, EventCompaction

__all__ = [
    "HISTORY_ROLES",
    "Content",
    "FunctionCall",
    "FunctionResponse",
    "Part",
    "Role",
    "Event",
    "EventActions",
    "EventCompaction",
]
