"""
Shared fixtures for agent-runtime tests.
"""

from typing import Any, AsyncIterator

import pytest

from agent_runtime.agents import InvocationContext, RunConfig
from agent_runtime.events import Content, Event, FunctionCall
from agent_runtime.llm.base import BaseLLM, LLMRequest, LLMResponse
from agent_runtime.sessions import Session


class ScriptedLLM(BaseLLM):
    """Model stand-in that replays queued responses and records requests.

    ``responses`` feed ``generate``; an Exception in the queue is raised.
    ``streams`` feed ``stream``, one list of fragments per call.
    """

    def __init__(
        self,
        responses: list[LLMResponse | Exception] | None = None,
        streams: list[list[LLMResponse]] | None = None,
    ):
        super().__init__(api_key="test-key", model="scripted-model")
        self.responses = list(responses or [])
        self.streams = list(streams or [])
        self.requests: list[LLMRequest] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def generate(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        if not self.responses:
            return LLMResponse(text="")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMResponse]:
        self.requests.append(request)
        fragments = self.streams.pop(0) if self.streams else []
        for fragment in fragments:
            yield fragment


def text_response(text: str) -> LLMResponse:
    return LLMResponse(text=text, finish_reason="stop")


def call_response(name: str, args: dict[str, Any] | None = None, call_id: str | None = None) -> LLMResponse:
    return LLMResponse(
        function_calls=[FunctionCall(name=name, args=args or {}, id=call_id)],
        finish_reason="tool_calls",
    )


def make_context(
    session: Session,
    user_input: str | None = "hello",
    run_config: RunConfig | None = None,
) -> InvocationContext:
    context = InvocationContext(session=session, run_config=run_config or RunConfig())
    if user_input is not None:
        context = context.with_user_input(user_input)
    return context


async def collect(events: AsyncIterator[Event]) -> list[Event]:
    return [event async for event in events]


def user_event(text: str, invocation_id: str, **kwargs: Any) -> Event:
    return Event(author="user", content=Content.from_text(text, role="user"), invocation_id=invocation_id, **kwargs)


@pytest.fixture
def session() -> Session:
    """Fresh standalone session."""
    return Session(app_name="test-app", user_id="user-1", id="session-1")
