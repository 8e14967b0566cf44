"""
Tests for event log compaction.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from agent_runtime.agents import LlmAgent
from agent_runtime.agents.llm_agent import SUMMARY_PREFIX
from agent_runtime.compaction import (
    BaseEventSummarizer,
    CompactionConfig,
    CompactionService,
    LLMEventSummarizer,
    extract_key_facts,
    fallback_summary,
    format_transcript,
)
from agent_runtime.errors import ConfigurationError
from agent_runtime.events import Content, Event, EventActions, EventCompaction, FunctionResponse, Part
from agent_runtime.llm.base import LLMResponse

from conftest import ScriptedLLM, collect, make_context, text_response, user_event


class StaticSummarizer(BaseEventSummarizer):
    def __init__(self, text: str = "summary"):
        self.text = text
        self.windows: list[list[Event]] = []

    async def summarize(self, events):
        self.windows.append(list(events))
        return self.text


async def add_invocations(session, start: int, count: int) -> None:
    """Append ``count`` user/model exchanges with increasing timestamps."""
    for n in range(start, start + count):
        invocation_id = f"inv-{n}"
        await session.append_event(user_event(f"question {n}", invocation_id, timestamp=float(n * 10)))
        await session.append_event(
            Event.from_text("assistant", f"answer {n}", invocation_id=invocation_id, timestamp=float(n * 10 + 1))
        )


def window_invocations(window: list[Event]) -> list[str]:
    seen: list[str] = []
    for event in window:
        if event.invocation_id not in seen:
            seen.append(event.invocation_id)
    return seen


def test_compaction_config_defaults():
    """Test default interval and overlap."""
    config = CompactionConfig()
    assert config.compaction_interval == 10
    assert config.overlap_size == 2
    assert config.enabled is True


def test_compaction_config_rejects_bad_interval():
    """Test the interval must be at least one."""
    with pytest.raises(ConfigurationError):
        CompactionConfig(compaction_interval=0)


def test_compaction_config_rejects_overlap_not_below_interval():
    """Test overlap must stay below the interval."""
    with pytest.raises(ConfigurationError):
        CompactionConfig(compaction_interval=3, overlap_size=3)
    with pytest.raises(ValueError):
        CompactionConfig(compaction_interval=3, overlap_size=-1)


@pytest.mark.asyncio
async def test_no_compaction_before_interval(session):
    """Test nothing happens until enough new invocations accumulate."""
    summarizer = StaticSummarizer()
    config = CompactionConfig(compaction_interval=3, overlap_size=1, summarizer=summarizer)
    await add_invocations(session, 1, 2)

    marker = await CompactionService().run_compaction_if_needed(session, config)

    assert marker is None
    assert summarizer.windows == []


@pytest.mark.asyncio
async def test_compaction_fires_once_per_interval_with_overlap(session):
    """Test windows cover new invocations plus the configured overlap."""
    summarizer = StaticSummarizer()
    config = CompactionConfig(compaction_interval=3, overlap_size=1, summarizer=summarizer)
    service = CompactionService()

    await add_invocations(session, 1, 3)
    first = await service.run_compaction_if_needed(session, config)
    assert first is not None
    assert window_invocations(summarizer.windows[0]) == ["inv-1", "inv-2", "inv-3"]
    assert first.actions.compaction.start_timestamp == 10.0
    assert first.actions.compaction.end_timestamp == 31.0

    assert await service.run_compaction_if_needed(session, config) is None

    await add_invocations(session, 4, 2)
    assert await service.run_compaction_if_needed(session, config) is None

    await add_invocations(session, 6, 1)
    second = await service.run_compaction_if_needed(session, config)
    assert second is not None
    assert window_invocations(summarizer.windows[1]) == ["inv-3", "inv-4", "inv-5", "inv-6"]
    assert len(summarizer.windows) == 2


@pytest.mark.asyncio
async def test_compaction_marker_shape(session):
    """Test the marker event carries the summary and keeps raw events."""
    config = CompactionConfig(compaction_interval=2, overlap_size=0, summarizer=StaticSummarizer("condensed"))
    await add_invocations(session, 1, 2)

    marker = await CompactionService().run_compaction_if_needed(session, config)

    assert marker.author == "user"
    assert marker.content is None
    assert marker.invocation_id.startswith("e-")
    assert marker.actions.compaction.compacted_content.text == "condensed"
    assert session.events[-1] is marker
    assert len(session.events) == 5


@pytest.mark.asyncio
async def test_compaction_disabled(session):
    """Test a disabled config never compacts."""
    summarizer = StaticSummarizer()
    config = CompactionConfig(compaction_interval=1, overlap_size=0, enabled=False, summarizer=summarizer)
    await add_invocations(session, 1, 3)

    assert await CompactionService().run_compaction_if_needed(session, config) is None
    assert await CompactionService().run_compaction_if_needed(session, None) is None


@pytest.mark.asyncio
async def test_compaction_requires_summarizer(session):
    """Test a due compaction without a summarizer is a configuration error."""
    config = CompactionConfig(compaction_interval=1, overlap_size=0)
    await add_invocations(session, 1, 1)

    with pytest.raises(ConfigurationError):
        await CompactionService().run_compaction_if_needed(session, config)


@pytest.mark.asyncio
async def test_compaction_skipped_while_pass_running(session):
    """Test only one pass runs per session at a time."""
    summarizer = StaticSummarizer()
    config = CompactionConfig(compaction_interval=1, overlap_size=0, summarizer=summarizer)
    service = CompactionService()
    await add_invocations(session, 1, 1)

    async with service._lock_for(session):
        assert await service.run_compaction_if_needed(session, config) is None

    assert summarizer.windows == []


@pytest.mark.asyncio
async def test_compaction_lock_dropped_after_pass(session):
    """Test the per-session lock is not kept once a pass finishes."""
    config = CompactionConfig(compaction_interval=1, overlap_size=0, summarizer=StaticSummarizer())
    service = CompactionService()
    await add_invocations(session, 1, 1)

    assert await service.run_compaction_if_needed(session, config) is not None
    assert len(service._locks) == 0


def test_format_transcript():
    """Test transcript lines name the author and tool activity."""
    events = [
        user_event("hello", "i1"),
        Event(
            author="assistant",
            content=Content(role="tool", parts=(Part(function_response=FunctionResponse(name="lookup", response={"value": 7})),)),
        ),
        Event.from_text("assistant", "seven"),
    ]

    transcript = format_transcript(events)

    assert transcript.splitlines() == [
        "user: hello",
        "assistant: [lookup returned {'value': 7}]",
        "assistant: seven",
    ]


def test_extract_key_facts():
    """Test tool results and stated user facts are picked up."""
    events = [
        user_event("My name is Alex and I prefer tea", "i1"),
        user_event("ok thanks", "i1"),
        Event(
            author="assistant",
            content=Content(role="tool", parts=(Part(function_response=FunctionResponse(name="weather", response="Sunny")),)),
        ),
    ]

    facts = extract_key_facts(events)

    assert facts == [
        "[User stated]: My name is Alex and I prefer tea",
        "[Tool result weather]: Sunny",
    ]


def test_fallback_summary():
    """Test the model-free summary counts roles and names first and last topics."""
    events = [
        user_event("Plan my trip", "i1"),
        Event.from_text("assistant", "Sure"),
        user_event("Book the hotel", "i2"),
    ]

    summary = fallback_summary(events)

    assert summary.startswith("Earlier in this conversation:")
    assert "[2 user messages, 1 model responses, 0 tool results summarized]" in summary
    assert "First topic: Plan my trip" in summary
    assert "Last topic before this: Book the hotel" in summary


@pytest.mark.asyncio
async def test_llm_summarizer_uses_model():
    """Test the summarizer prompts the model with the transcript."""
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(text="  Alex planned a trip.  "))
    summarizer = LLMEventSummarizer(llm)

    summary = await summarizer.summarize([user_event("Plan my trip", "i1")])

    assert summary == "Alex planned a trip."
    request = llm.generate.call_args.args[0]
    assert "user: Plan my trip" in request.contents[0].text
    assert request.contents[0].role == "user"


@pytest.mark.asyncio
async def test_llm_summarizer_falls_back_on_error():
    """Test a failing model call produces the fallback summary."""
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=RuntimeError("API down"))
    summarizer = LLMEventSummarizer(llm)

    summary = await summarizer.summarize([user_event("Plan my trip", "i1")])

    assert summary.startswith("Earlier in this conversation:")
    assert "First topic: Plan my trip" in summary


@pytest.mark.asyncio
async def test_llm_summarizer_custom_template():
    """Test a custom prompt template receives the transcript."""
    llm = ScriptedLLM([text_response("short")])
    summarizer = LLMEventSummarizer(llm, prompt_template="Condense:\n{conversation_history}")

    await summarizer.summarize([user_event("hello", "i1")])

    assert llm.requests[0].contents[0].text == "Condense:\nuser: hello"


@pytest.mark.asyncio
async def test_history_is_additive_by_default(session):
    """Test raw events stay in history when compacted-history is off."""
    await add_invocations(session, 1, 2)
    await session.append_event(_marker(10.0, 21.0, "old turns"))

    llm = ScriptedLLM([text_response("ok")])
    await collect(LlmAgent(name="assistant", llm=llm).run(make_context(session, "new")))

    texts = [c.text for c in llm.requests[0].contents]
    assert texts == ["question 1", "answer 1", "question 2", "answer 2", "new"]


@pytest.mark.asyncio
async def test_compacted_history_substitutes_summary(session):
    """Test covered events are replaced by one summary when opted in."""
    await add_invocations(session, 1, 3)
    await session.append_event(_marker(10.0, 21.0, "old turns"))

    llm = ScriptedLLM([text_response("ok")])
    agent = LlmAgent(name="assistant", llm=llm, use_compacted_history=True)
    await collect(agent.run(make_context(session, "new")))

    contents = llm.requests[0].contents
    assert [c.text for c in contents] == [
        f"{SUMMARY_PREFIX}old turns",
        "question 3",
        "answer 3",
        "new",
    ]
    assert contents[0].role == "user"


def _marker(start: float, end: float, summary: str) -> Event:
    return Event(
        author="user",
        invocation_id="e-marker",
        actions=EventActions(
            compaction=EventCompaction(
                start_timestamp=start,
                end_timestamp=end,
                compacted_content=Content.from_text(summary),
            ),
        ),
    )
