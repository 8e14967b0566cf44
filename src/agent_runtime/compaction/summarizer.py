"""
Event summarizers used by the compaction service.

The LLM summarizer condenses a window of events into a short context
block. If the model call fails, a deterministic summary is built from the
events themselves so a compaction pass never fails on the model alone.
"""

from abc import ABC, abstractmethod

import structlog

from ..events import Content, Event
from ..llm.base import BaseLLM, GenerationConfig, LLMRequest

logger = structlog.get_logger()

DEFAULT_PROMPT_TEMPLATE = """Summarize the following conversation between a user and an AI agent into a concise context block.
Preserve:
- Any specific facts, names, dates, or numbers mentioned
- The user's requests and what was accomplished
- Decisions made and any unresolved questions or tasks
- Tool results and their outcomes

Keep it under 500 words.{key_facts}

Conversation:
{conversation_history}

Summary:"""

SUMMARIZER_INSTRUCTION = "You are a conversation summarizer. Create concise, fact-preserving summaries."

MAX_LINE_CHARS = 300
MAX_KEY_FACTS = 10


class BaseEventSummarizer(ABC):
    """Produces summary text for a window of events."""

    @abstractmethod
    async def summarize(self, events: list[Event]) -> str:
        pass


def format_transcript(events: list[Event]) -> str:
    """Render events as ``author: text`` lines, one per text part."""
    lines = []
    for event in events:
        if event.content is None:
            continue
        for part in event.content.parts:
            if part.text:
                lines.append(f"{event.author}: {part.text[:MAX_LINE_CHARS]}")
            elif part.function_call is not None:
                lines.append(f"{event.author}: [called {part.function_call.name}({part.function_call.args})]")
            elif part.function_response is not None:
                lines.append(f"{event.author}: [{part.function_response.name} returned {part.function_response.response}]")
    return "\n".join(lines)


def extract_key_facts(events: list[Event]) -> list[str]:
    """Pull tool results and facts the user stated about themselves."""
    facts = []

    for event in events:
        if event.content is None:
            continue

        for response in event.content.function_responses:
            preview = str(response.response)[:200]
            if preview.strip():
                facts.append(f"[Tool result {response.name}]: {preview}")

        if event.content.role == "user":
            text = event.content.text
            lowered = text.lower()
            if any(phrase in lowered for phrase in [
                "my name is", "i work", "i live", "i prefer",
                "remember that", "don't forget", "important:",
            ]):
                facts.append(f"[User stated]: {text[:200]}")

    return facts[:MAX_KEY_FACTS]


def fallback_summary(events: list[Event]) -> str:
    """Summary built without a model."""
    parts = ["Earlier in this conversation:"]

    key_facts = extract_key_facts(events)
    if key_facts:
        parts.append("\nKey information:")
        for fact in key_facts:
            parts.append(f"  - {fact}")

    roles = [e.content.role for e in events if e.content is not None]
    user_count = roles.count("user")
    model_count = roles.count("model")
    tool_count = roles.count("tool")
    parts.append(f"\n[{user_count} user messages, {model_count} model responses, {tool_count} tool results summarized]")

    user_texts = [
        e.content.text for e in events
        if e.content is not None and e.content.role == "user" and e.content.text
    ]
    if user_texts:
        parts.append(f"\nFirst topic: {user_texts[0][:150]}")
        if len(user_texts) > 1:
            parts.append(f"Last topic before this: {user_texts[-1][:150]}")

    return "\n".join(parts)


class LLMEventSummarizer(BaseEventSummarizer):
    """Summarizes events with a language model."""

    def __init__(self, llm: BaseLLM, prompt_template: str | None = None):
        self.llm = llm
        self.prompt_template = prompt_template or DEFAULT_PROMPT_TEMPLATE

    def build_request(self, events: list[Event]) -> LLMRequest:
        key_facts = extract_key_facts(events)
        facts_section = ""
        if key_facts:
            facts_section = "\n\nKey facts to preserve:\n" + "\n".join(f"- {f}" for f in key_facts)

        prompt = self.prompt_template.replace(
            "{conversation_history}", format_transcript(events)
        ).replace("{key_facts}", facts_section)

        return LLMRequest(
            system_instruction=SUMMARIZER_INSTRUCTION,
            contents=[Content.from_text(prompt, role="user")],
            config=GenerationConfig(temperature=0.2),
        )

    async def summarize(self, events: list[Event]) -> str:
        try:
            response = await self.llm.generate(self.build_request(events))
            summary = response.text.strip()
        except Exception as e:
            logger.error("Compaction summarization failed, using fallback", error=str(e))
            return fallback_summary(events)

        if not summary:
            logger.warning("Summarizer returned empty text, using fallback")
            return fallback_summary(events)
        return summary
