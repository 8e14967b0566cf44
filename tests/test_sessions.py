"""
Tests for sessions, scoped state and the session service.
"""

import pytest

from agent_runtime.errors import SessionExistsError, SessionNotFoundError
from agent_runtime.events import Event, EventActions
from agent_runtime.sessions import InMemorySessionService, SessionState
from agent_runtime.sessions.state import split_state_delta


def test_state_routes_keys_by_prefix():
    """Test prefixed keys land in their scope and keep the prefix."""
    app, user, local = {}, {}, {}
    state = SessionState(session=local, app=app, user=user)

    state["app:theme"] = "dark"
    state["user:name"] = "Ada"
    state["draft"] = "hello"

    assert app == {"app:theme": "dark"}
    assert user == {"user:name": "Ada"}
    assert local == {"draft": "hello"}
    assert state.to_dict() == {"app:theme": "dark", "user:name": "Ada", "draft": "hello"}
    assert len(state) == 3


def test_split_state_delta():
    """Test a delta splits into app, user and session parts."""
    app, user, local = split_state_delta({"app:a": 1, "user:b": 2, "c": 3})

    assert app == {"app:a": 1}
    assert user == {"user:b": 2}
    assert local == {"c": 3}


@pytest.mark.asyncio
async def test_append_event_applies_state_delta(session):
    """Test a non-partial event's delta is merged on append."""
    event = Event.from_text("agent", "done", actions=EventActions(state_delta={"result": "42"}))

    await session.append_event(event)

    assert session.state["result"] == "42"
    assert session.events == [event]
    assert session.last_update_time >= event.timestamp


@pytest.mark.asyncio
async def test_partial_event_does_not_change_state(session):
    """Test partial events are logged but never apply their delta."""
    event = Event.from_text("agent", "He", partial=True, actions=EventActions(state_delta={"result": "He"}))

    await session.append_event(event)

    assert "result" not in session.state
    assert session.event_count == 1


@pytest.mark.asyncio
async def test_events_for_invocation(session):
    """Test filtering the log by invocation id."""
    await session.append_event(Event.from_text("agent", "a", invocation_id="i1"))
    await session.append_event(Event.from_text("agent", "b", invocation_id="i2"))

    assert [e.text for e in session.events_for_invocation("i2")] == ["b"]


@pytest.mark.asyncio
async def test_create_and_get_session():
    """Test creating a session and reading it back."""
    service = InMemorySessionService()

    session = await service.create_session("app", "u1", state={"topic": "tea"}, session_id="s1")

    assert session.id == "s1"
    assert await service.get_session("app", "u1", "s1") is session
    assert await service.get_session("app", "u2", "s1") is None
    assert session.state["topic"] == "tea"


@pytest.mark.asyncio
async def test_create_session_generates_id():
    """Test a missing session id is generated."""
    service = InMemorySessionService()

    session = await service.create_session("app", "u1")

    assert session.id


@pytest.mark.asyncio
async def test_duplicate_session_rejected():
    """Test reusing a session id fails."""
    service = InMemorySessionService()
    await service.create_session("app", "u1", session_id="s1")

    with pytest.raises(SessionExistsError):
        await service.create_session("app", "u1", session_id="s1")


@pytest.mark.asyncio
async def test_app_and_user_state_shared_across_sessions():
    """Test app state is shared app-wide and user state per user."""
    service = InMemorySessionService()
    first = await service.create_session("app", "u1", session_id="s1")
    second = await service.create_session("app", "u1", session_id="s2")
    other_user = await service.create_session("app", "u2", session_id="s3")

    first.state["app:version"] = 2
    first.state["user:name"] = "Ada"
    first.state["local"] = True

    assert second.state["app:version"] == 2
    assert second.state["user:name"] == "Ada"
    assert "local" not in second.state
    assert other_user.state["app:version"] == 2
    assert "user:name" not in other_user.state


@pytest.mark.asyncio
async def test_list_and_delete_sessions():
    """Test listing a user's sessions and deleting one."""
    service = InMemorySessionService()
    await service.create_session("app", "u1", session_id="s1")
    await service.create_session("app", "u1", session_id="s2")

    assert sorted(s.id for s in await service.list_sessions("app", "u1")) == ["s1", "s2"]

    await service.delete_session("app", "u1", "s1")

    assert [s.id for s in await service.list_sessions("app", "u1")] == ["s2"]
    with pytest.raises(SessionNotFoundError):
        await service.delete_session("app", "u1", "s1")


@pytest.mark.asyncio
async def test_service_append_event():
    """Test appending through the service updates the session."""
    service = InMemorySessionService()
    session = await service.create_session("app", "u1", session_id="s1")

    await service.append_event(session, Event.from_text("agent", "hi", actions=EventActions(state_delta={"user:seen": True})))

    assert session.event_count == 1
    assert session.state["user:seen"] is True
