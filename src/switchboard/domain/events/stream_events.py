"""Stream event vocabulary.

Every event of one synthesized stream carries a strictly increasing
``sequence``, an ``emitted_at`` timestamp (epoch milliseconds) and the
``run_id`` of the execution that produced it. Downstream adapters pattern-match
on ``type``, so the field set of each variant is part of the wire contract.
All events are immutable (frozen dataclass).
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any

from switchboard.domain.model.response import AgentResponse, ToolError, normalize_response


class StreamEventType(str, Enum):
    """All event types emitted while processing a message."""

    RUN_START = "run-start"
    TOKEN = "token"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    TOOL_ERROR = "tool-error"  # Legacy: newer agents attach errors to tool-result
    STEP_COMPLETE = "step-complete"
    HANDOFF_START = "handoff-start"
    RUN_END = "run-end"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _serialize(item) for key, item in value.items()}
    return value


@dataclass(frozen=True, kw_only=True)
class StreamEvent:
    """Base class for all stream events."""

    type: StreamEventType
    sequence: int = 0
    emitted_at: int = field(default_factory=now_ms)
    run_id: str
    thread_id: str | None = None

    def with_sequence(self, sequence: int, thread_id: str | None = None) -> "StreamEvent":
        """Copy of this event renumbered for the outward stream."""
        if thread_id is None or self.thread_id is not None:
            return replace(self, sequence=sequence)
        return replace(self, sequence=sequence, thread_id=thread_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire format.

        Optional fields left as None are omitted.
        """
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            data[_camel(item.name)] = _serialize(value)
        return data


@dataclass(frozen=True, kw_only=True)
class RunInput:
    message: str
    previous_messages: tuple[Any, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "previousMessages": [_serialize(entry) for entry in self.previous_messages],
        }


@dataclass(frozen=True, kw_only=True)
class RunStartEvent(StreamEvent):
    type: StreamEventType = StreamEventType.RUN_START
    started_at: int
    input: RunInput


@dataclass(frozen=True, kw_only=True)
class TokenEvent(StreamEvent):
    type: StreamEventType = StreamEventType.TOKEN
    message_id: str
    step: int = 0
    delta: str
    accumulated: str


@dataclass(frozen=True, kw_only=True)
class ToolCallEvent(StreamEvent):
    type: StreamEventType = StreamEventType.TOOL_CALL
    message_id: str
    step: int = 0
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = field(default_factory=dict)
    started_at: int = field(default_factory=now_ms)


@dataclass(frozen=True, kw_only=True)
class ToolResultEvent(StreamEvent):
    type: StreamEventType = StreamEventType.TOOL_RESULT
    message_id: str
    step: int = 0
    tool_call_id: str
    tool_name: str
    output: Any = None
    completed_at: int = field(default_factory=now_ms)
    duration_ms: int = 0
    metadata: dict[str, Any] | None = None
    error: ToolError | None = None


@dataclass(frozen=True, kw_only=True)
class ToolErrorInfo:
    message: str
    name: str | None = None
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message}
        if self.name is not None:
            data["name"] = self.name
        if self.stack is not None:
            data["stack"] = self.stack
        return data


@dataclass(frozen=True, kw_only=True)
class ToolErrorEvent(StreamEvent):
    type: StreamEventType = StreamEventType.TOOL_ERROR
    message_id: str
    step: int = 0
    tool_call_id: str
    tool_name: str
    error: ToolErrorInfo
    completed_at: int = field(default_factory=now_ms)
    duration_ms: int = 0


@dataclass(frozen=True, kw_only=True)
class StepCompleteEvent(StreamEvent):
    type: StreamEventType = StreamEventType.STEP_COMPLETE
    step_index: int
    message_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class HandoffStartEvent(StreamEvent):
    type: StreamEventType = StreamEventType.HANDOFF_START
    from_agent_id: str
    to_agent_id: str
    message: str
    context: dict[str, Any] | None = None
    handoff_depth: int


@dataclass(frozen=True, kw_only=True)
class RunEndEvent(StreamEvent):
    type: StreamEventType = StreamEventType.RUN_END
    finished_at: int = field(default_factory=now_ms)
    duration_ms: int = 0
    result: AgentResponse = field(default_factory=AgentResponse)


_EVENT_CLASSES: dict[StreamEventType, type[StreamEvent]] = {
    StreamEventType.RUN_START: RunStartEvent,
    StreamEventType.TOKEN: TokenEvent,
    StreamEventType.TOOL_CALL: ToolCallEvent,
    StreamEventType.TOOL_RESULT: ToolResultEvent,
    StreamEventType.TOOL_ERROR: ToolErrorEvent,
    StreamEventType.STEP_COMPLETE: StepCompleteEvent,
    StreamEventType.HANDOFF_START: HandoffStartEvent,
    StreamEventType.RUN_END: RunEndEvent,
}


def _snake(name: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in name)


def stream_event_from_dict(data: Mapping[str, Any]) -> StreamEvent:
    """Parse a camelCase wire event (as produced by ``to_dict``)."""
    event_type = StreamEventType(data["type"])
    cls = _EVENT_CLASSES[event_type]
    known = {item.name for item in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = _snake(key)
        if name in known and name != "type":
            kwargs[name] = value

    if event_type == StreamEventType.RUN_START and isinstance(kwargs.get("input"), Mapping):
        raw = kwargs["input"]
        kwargs["input"] = RunInput(
            message=raw.get("message", ""),
            previous_messages=tuple(raw.get("previousMessages") or ()),
        )
    elif event_type == StreamEventType.RUN_END and "result" in kwargs:
        kwargs["result"] = normalize_response(kwargs["result"])
    elif event_type == StreamEventType.TOOL_ERROR and isinstance(kwargs.get("error"), Mapping):
        raw = kwargs["error"]
        kwargs["error"] = ToolErrorInfo(
            message=str(raw.get("message", "")), name=raw.get("name"), stack=raw.get("stack")
        )
    elif event_type == StreamEventType.TOOL_RESULT and isinstance(kwargs.get("error"), Mapping):
        raw = kwargs["error"]
        kwargs["error"] = ToolError(
            code=str(raw.get("code") or raw.get("name") or "TOOL_EXECUTION_ERROR"),
            message=str(raw.get("message", "")),
        )
    return cls(**kwargs)
