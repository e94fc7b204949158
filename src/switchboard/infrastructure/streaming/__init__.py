"""Wire formats for event streams."""

from switchboard.infrastructure.streaming.openai import (
    SSE_DONE,
    chat_completion,
    format_sse,
    to_openai_chunks,
    to_sse_stream,
)

__all__ = [
    "SSE_DONE",
    "chat_completion",
    "format_sse",
    "to_openai_chunks",
    "to_sse_stream",
]
