"""OpenAI-compatible output for processor event streams.

Maps stream events to ``chat.completion.chunk`` payloads:

- the first ``run-start`` becomes the assistant role chunk;
- ``token`` becomes a content delta (empty deltas are skipped);
- ``tool-call`` becomes a ``tool_calls`` delta;
- the last ``run-end`` of the stream becomes the final ``chat.completion``
  payload carrying the full content and usage.

Handoff hops produce several runs in one stream; they are presented as a
single completion whose id derives from the first run.
"""

import json
import time
from collections.abc import AsyncIterator, Callable
from typing import Any, Optional

from switchboard.domain.events import (
    RunEndEvent,
    RunStartEvent,
    StreamEvent,
    TokenEvent,
    ToolCallEvent,
)
from switchboard.domain.model import AgentResponse, Usage


def format_sse(data: Any, event: Optional[str] = None) -> str:
    """Format one Server-Sent Event frame."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    payload = data if isinstance(data, str) else json.dumps(data, default=str)
    lines.append(f"data: {payload}")
    lines.append("")
    return "\n".join(lines) + "\n"


SSE_DONE = format_sse("[DONE]")


def map_usage(usage: Optional[Usage]) -> Optional[dict[str, int]]:
    if usage is None:
        return None
    return {
        "prompt_tokens": usage.input_tokens,
        "completion_tokens": usage.output_tokens,
        "total_tokens": usage.total_tokens,
    }


def encode_tool_arguments(arguments: Any) -> str:
    try:
        return json.dumps(arguments or {})
    except (TypeError, ValueError):
        return "{}"


def chat_completion(
    completion_id: str,
    model: str,
    response: AgentResponse,
    created: Optional[int] = None,
    finish_reason: str = "stop",
) -> dict[str, Any]:
    """Non-streaming ``chat.completion`` payload for a response."""
    payload: dict[str, Any] = {
        "id": completion_id,
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": response.content},
                "finish_reason": finish_reason,
            }
        ],
    }
    usage = map_usage(response.usage)
    if usage is not None:
        payload["usage"] = usage
    return payload


def _chunk(completion_id: str, created: int, model: str, delta: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


async def to_openai_chunks(
    events: AsyncIterator[StreamEvent],
    model: str,
    now: Callable[[], float] = time.time,
) -> AsyncIterator[dict[str, Any]]:
    """
    Convert a processor event stream into OpenAI chunk payloads.

    Args:
        events: Events from ``MessageProcessor.stream_message``
        model: Model name echoed in every chunk
        now: Clock in seconds, used for ``created``

    Yields:
        ``chat.completion.chunk`` dicts, then one ``chat.completion`` dict
    """
    created = int(now())
    completion_id = ""
    role_sent = False
    tool_index = 0
    content = ""
    final: Optional[RunEndEvent] = None

    async for event in events:
        if not completion_id:
            completion_id = f"chatcmpl-{event.run_id}"

        if isinstance(event, RunStartEvent):
            if not role_sent:
                role_sent = True
                yield _chunk(completion_id, created, model, {"role": "assistant"})

        elif isinstance(event, TokenEvent):
            if event.delta:
                content += event.delta
                yield _chunk(completion_id, created, model, {"content": event.delta})

        elif isinstance(event, ToolCallEvent):
            yield _chunk(
                completion_id,
                created,
                model,
                {
                    "tool_calls": [
                        {
                            "index": tool_index,
                            "id": event.tool_call_id,
                            "type": "function",
                            "function": {
                                "name": event.tool_name,
                                "arguments": encode_tool_arguments(event.input),
                            },
                        }
                    ]
                },
            )
            tool_index += 1

        elif isinstance(event, RunEndEvent):
            final = event

    if final is not None:
        response = AgentResponse(
            content=final.result.content or content,
            usage=final.result.usage,
        )
        yield chat_completion(completion_id, model, response, created=created)


async def to_sse_stream(
    events: AsyncIterator[StreamEvent], model: str
) -> AsyncIterator[str]:
    """OpenAI chunks as SSE frames, terminated by ``data: [DONE]``."""
    async for chunk in to_openai_chunks(events, model):
        yield format_sse(chunk)
    yield SSE_DONE
