"""Conversation history entries and tool outcome records.

Tool outcomes are persisted as two distinct record shapes. A failure always
carries an error code/message pair that a success never has, so a reader can
tell them apart by type alone.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class MessageRole(str, Enum):
    """Role of the message sender."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# Roles passed back to agents as previous messages
CONVERSATIONAL_ROLES = frozenset({MessageRole.USER, MessageRole.ASSISTANT, MessageRole.TOOL})


@dataclass(frozen=True, kw_only=True)
class ToolSuccess:
    """Outcome of a tool call that completed normally."""

    output: Any

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool-success", "output": self.output}


@dataclass(frozen=True, kw_only=True)
class ToolFailure:
    """Outcome of a tool call that failed."""

    error_code: str
    error_message: str
    output: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool-failure",
            "errorCode": self.error_code,
            "errorMessage": self.error_message,
            "output": self.output,
        }


ToolOutcomeRecord = Union[ToolSuccess, ToolFailure]


def tool_outcome_from_dict(data: Mapping[str, Any]) -> ToolOutcomeRecord:
    """Read a persisted tool outcome back into its record shape."""
    kind = data.get("type")
    if kind == "tool-success":
        return ToolSuccess(output=data.get("output"))
    if kind == "tool-failure":
        return ToolFailure(
            error_code=data["errorCode"],
            error_message=data["errorMessage"],
            output=data.get("output"),
        )
    raise ValueError(f"Unknown tool outcome type: {kind!r}")


@dataclass(frozen=True, kw_only=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True, kw_only=True)
class ToolCallPart:
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool-call",
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "input": self.input,
        }


@dataclass(frozen=True, kw_only=True)
class ToolResultPart:
    tool_call_id: str
    tool_name: str
    outcome: ToolOutcomeRecord

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool-result",
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "outcome": self.outcome.to_dict(),
        }


MessagePart = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass(frozen=True, kw_only=True)
class HistoryEntry:
    """
    One entry in a conversation history.

    Attributes:
        role: Who produced the entry
        content: Plain text, or an ordered list of parts for tool exchanges
    """

    role: MessageRole
    content: str | tuple[MessagePart, ...]

    @property
    def text(self) -> str:
        """Plain text of the entry, joining text parts when structured."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))

    @property
    def parts(self) -> tuple[MessagePart, ...]:
        if isinstance(self.content, str):
            return (TextPart(text=self.content),)
        return self.content

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role.value, "content": self.content}
        return {"role": self.role.value, "content": [part.to_dict() for part in self.content]}

    @classmethod
    def user(cls, text: str) -> "HistoryEntry":
        return cls(role=MessageRole.USER, content=text)

    @classmethod
    def assistant(cls, text: str) -> "HistoryEntry":
        return cls(role=MessageRole.ASSISTANT, content=text)


def history_entry_from_dict(data: Mapping[str, Any]) -> HistoryEntry:
    """Build an entry from an OpenAI-style ``{"role", "content"}`` mapping."""
    role = MessageRole(data["role"])
    content = data.get("content")
    if content is None:
        return HistoryEntry(role=role, content="")
    if isinstance(content, str):
        return HistoryEntry(role=role, content=content)

    parts: list[MessagePart] = []
    for part in content:
        kind = part.get("type")
        if kind == "text":
            parts.append(TextPart(text=part["text"]))
        elif kind == "tool-call":
            parts.append(
                ToolCallPart(
                    tool_call_id=part["toolCallId"],
                    tool_name=part["toolName"],
                    input=dict(part.get("input") or {}),
                )
            )
        elif kind == "tool-result":
            parts.append(
                ToolResultPart(
                    tool_call_id=part["toolCallId"],
                    tool_name=part["toolName"],
                    outcome=tool_outcome_from_dict(part["outcome"]),
                )
            )
        else:
            raise ValueError(f"Unknown message part type: {kind!r}")
    return HistoryEntry(role=role, content=tuple(parts))
