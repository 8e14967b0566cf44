"""
Message content model: a role plus an ordered list of parts.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "model", "tool", "system"]

# Roles that take part in history reconstruction
HISTORY_ROLES: frozenset[str] = frozenset({"user", "model", "tool"})


@dataclass(frozen=True)
class FunctionCall:
    """A function call requested by the model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class FunctionResponse:
    """The result of executing a function call."""

    name: str
    response: Any = None
    id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class Part:
    """One piece of content. Exactly one payload field is set."""

    text: str | None = None
    reasoning: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    inline_data: bytes | None = None
    mime_type: str | None = None

    def __post_init__(self) -> None:
        payloads = [
            self.text,
            self.reasoning,
            self.function_call,
            self.function_response,
            self.inline_data,
        ]
        set_count = sum(1 for p in payloads if p is not None)
        if set_count != 1:
            raise ValueError(f"Part must carry exactly one payload, got {set_count}")
        if self.inline_data is not None and not self.mime_type:
            raise ValueError("Inline data requires a MIME type")

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_reasoning(cls, text: str) -> "Part":
        return cls(reasoning=text)

    @classmethod
    def from_function_call(cls, call: FunctionCall) -> "Part":
        return cls(function_call=call)

    @classmethod
    def from_function_response(cls, response: FunctionResponse) -> "Part":
        return cls(function_response=response)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "Part":
        return cls(inline_data=data, mime_type=mime_type)


@dataclass(frozen=True)
class Content:
    """A message: role and ordered parts."""

    role: Role
    parts: tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable of parts but store an immutable tuple
        if not isinstance(self.parts, tuple):
            object.__setattr__(self, "parts", tuple(self.parts))

    @classmethod
    def from_text(cls, text: str, role: Role = "model") -> "Content":
        return cls(role=role, parts=(Part(text=text),))

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if p.text is not None)

    @property
    def function_calls(self) -> list[FunctionCall]:
        return [p.function_call for p in self.parts if p.function_call is not None]

    @property
    def function_responses(self) -> list[FunctionResponse]:
        return [p.function_response for p in self.parts if p.function_response is not None]
