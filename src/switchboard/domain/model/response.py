"""Agent response shape shared by every execution path."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class _Unset(Enum):
    NO_RESULT = "NO_RESULT"

    def __repr__(self) -> str:
        return self.value


# A tool call that has not produced an output; None is a real output
NO_RESULT = _Unset.NO_RESULT


@dataclass(frozen=True, kw_only=True)
class ToolError:
    """Error attached to a tool call that failed."""

    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(kw_only=True)
class ToolCallRecord:
    """
    A tool invocation made while producing a response.

    Attributes:
        tool_id: Name of the tool that was called
        args: Arguments passed to the tool
        result: Tool output, or NO_RESULT when the call was not realized
        error: Error details, when the call failed
        call_id: Stable call identifier, when the agent supplied one
    """

    tool_id: str
    args: dict[str, Any] = field(default_factory=dict)
    result: Any = NO_RESULT
    error: ToolError | None = None
    call_id: str | None = None

    @property
    def has_result(self) -> bool:
        """A call is realized when it produced an output or an error."""
        return self.result is not NO_RESULT or self.error is not None

    @property
    def output(self) -> Any:
        """The tool output, with an unrealized call reading as None."""
        return None if self.result is NO_RESULT else self.result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"toolId": self.tool_id, "args": self.args}
        if self.result is not NO_RESULT:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.call_id:
            data["callId"] = self.call_id
        return data


@dataclass(frozen=True, kw_only=True)
class HandoffRequest:
    """Request to transfer the conversation to another agent."""

    target_agent_id: str
    message: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"agentId": self.target_agent_id}
        if self.message is not None:
            data["message"] = self.message
        if self.context is not None:
            data["context"] = self.context
        return data


@dataclass(frozen=True, kw_only=True)
class Usage:
    """Token usage reported by an agent."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(kw_only=True)
class AgentResponse:
    """Normalized result of executing an agent, pipeline or intent action.

    A response either carries a handoff request or it is terminal.
    """

    content: str = ""
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    handoff: HandoffRequest | None = None
    usage: Usage | None = None

    @property
    def is_terminal(self) -> bool:
        return self.handoff is None

    @property
    def realized_tool_calls(self) -> list[ToolCallRecord]:
        return [call for call in self.tool_calls if call.has_result]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "content": self.content,
            "toolCalls": [call.to_dict() for call in self.tool_calls],
        }
        if self.handoff is not None:
            data["handoff"] = self.handoff.to_dict()
        if self.usage is not None:
            data["usage"] = self.usage.to_dict()
        return data


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def tool_error_from_value(value: Any) -> ToolError | None:
    """Coerce an agent-supplied error value into a ToolError."""
    if value is None:
        return None
    if isinstance(value, ToolError):
        return value
    if isinstance(value, BaseException):
        return ToolError(code=type(value).__name__, message=str(value))
    if isinstance(value, Mapping):
        return ToolError(
            code=str(_pick(value, "code", "name", default="TOOL_EXECUTION_ERROR")),
            message=str(_pick(value, "message", default="")),
        )
    return ToolError(code="TOOL_EXECUTION_ERROR", message=str(value))


def _pick_result(data: Mapping[str, Any]) -> Any:
    """Tool output under "result" or "output"; a present None counts as output."""
    present = [key for key in ("result", "output") if key in data]
    for key in present:
        if data[key] is not None:
            return data[key]
    return None if present else NO_RESULT


def tool_call_from_value(value: Any) -> ToolCallRecord:
    if isinstance(value, ToolCallRecord):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"Unsupported tool call value: {type(value).__name__}")
    return ToolCallRecord(
        tool_id=str(_pick(value, "tool_id", "toolId", "toolName", "name", default="")),
        args=dict(_pick(value, "args", "input", "arguments", default={})),
        result=_pick_result(value),
        error=tool_error_from_value(value.get("error")),
        call_id=_pick(value, "call_id", "callId", "toolCallId", "id"),
    )


def handoff_from_value(value: Any) -> HandoffRequest | None:
    if value is None:
        return None
    if isinstance(value, HandoffRequest):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"Unsupported handoff value: {type(value).__name__}")
    target = _pick(value, "target_agent_id", "agent_id", "agentId", "targetAgentId")
    if not target:
        raise ValueError("Handoff request is missing a target agent id")
    return HandoffRequest(
        target_agent_id=str(target),
        message=value.get("message"),
        context=value.get("context"),
    )


def usage_from_value(value: Any) -> Usage | None:
    if value is None or isinstance(value, Usage):
        return value
    return Usage(
        input_tokens=int(_pick(value, "input_tokens", "inputTokens", "prompt_tokens", default=0)),
        output_tokens=int(
            _pick(value, "output_tokens", "outputTokens", "completion_tokens", default=0)
        ),
        total_tokens=int(_pick(value, "total_tokens", "totalTokens", default=0)),
    )


def normalize_response(value: Any) -> AgentResponse:
    """Normalize whatever an agent or pipeline returned into an AgentResponse.

    Accepts an AgentResponse, a mapping with content/tool_calls/handoff keys
    (snake_case or camelCase), a plain string, or None (empty response).
    """
    if isinstance(value, AgentResponse):
        return value
    if value is None:
        return AgentResponse()
    if isinstance(value, str):
        return AgentResponse(content=value)
    if isinstance(value, Mapping):
        raw_calls = _pick(value, "tool_calls", "toolCalls", default=[])
        return AgentResponse(
            content=str(_pick(value, "content", default="")),
            tool_calls=[tool_call_from_value(call) for call in raw_calls],
            handoff=handoff_from_value(value.get("handoff")),
            usage=usage_from_value(value.get("usage")),
        )
    raise TypeError(f"Cannot normalize agent result of type {type(value).__name__}")
