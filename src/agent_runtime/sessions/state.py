"""
Scoped session state.

Keys are routed to a scope by prefix:
- ``app:``  shared by every session of the app
- ``user:`` shared by every session of the same user in the app
- no prefix: local to the session

Keys keep their prefix in every scope, so the merged view has no collisions.
"""

from collections.abc import Iterator, MutableMapping
from typing import Any

APP_PREFIX = "app:"
USER_PREFIX = "user:"


class SessionState(MutableMapping[str, Any]):
    """Merged view over the app, user and session state stores."""

    def __init__(
        self,
        session: dict[str, Any] | None = None,
        app: dict[str, Any] | None = None,
        user: dict[str, Any] | None = None,
    ):
        # The app/user dicts are shared references owned by the session service
        self._session = session if session is not None else {}
        self._app = app if app is not None else {}
        self._user = user if user is not None else {}

    def _store_for(self, key: str) -> dict[str, Any]:
        if key.startswith(APP_PREFIX):
            return self._app
        if key.startswith(USER_PREFIX):
            return self._user
        return self._session

    def __getitem__(self, key: str) -> Any:
        return self._store_for(key)[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._store_for(key)[key] = value

    def __delitem__(self, key: str) -> None:
        del self._store_for(key)[key]

    def __iter__(self) -> Iterator[str]:
        yield from self._app
        yield from self._user
        yield from self._session

    def __len__(self) -> int:
        return len(self._app) + len(self._user) + len(self._session)

    def __repr__(self) -> str:
        return f"SessionState({self.to_dict()!r})"

    def apply_delta(self, delta: dict[str, Any]) -> None:
        """Merge a state delta into the scoped stores."""
        for key, value in delta.items():
            self[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the merged view."""
        return {**self._app, **self._user, **self._session}


def split_state_delta(delta: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
    """Split a delta into (app, user, session) parts by key prefix."""
    app: dict[str, Any] = {}
    user: dict[str, Any] = {}
    session: dict[str, Any] = {}
    for key, value in delta.items():
        if key.startswith(APP_PREFIX):
            app[key] = value
        elif key.startswith(USER_PREFIX):
            user[key] = value
        else:
            session[key] = value
    return app, user, session
