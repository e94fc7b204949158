"""Stream events emitted while processing a message."""

from switchboard.domain.events.stream_events import (
    HandoffStartEvent,
    RunEndEvent,
    RunInput,
    RunStartEvent,
    StepCompleteEvent,
    StreamEvent,
    StreamEventType,
    TokenEvent,
    ToolCallEvent,
    ToolErrorEvent,
    ToolErrorInfo,
    ToolResultEvent,
    now_ms,
    stream_event_from_dict,
)

__all__ = [
    "HandoffStartEvent",
    "RunEndEvent",
    "RunInput",
    "RunStartEvent",
    "StepCompleteEvent",
    "StreamEvent",
    "StreamEventType",
    "TokenEvent",
    "ToolCallEvent",
    "ToolErrorEvent",
    "ToolErrorInfo",
    "ToolResultEvent",
    "now_ms",
    "stream_event_from_dict",
]
