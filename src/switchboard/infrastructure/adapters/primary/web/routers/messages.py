"""Message processing router."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from switchboard.domain.model import ProcessOptions
from switchboard.infrastructure.adapters.primary.web.dependencies import (
    get_processor,
    prime_stream,
)
from switchboard.infrastructure.adapters.primary.web.schemas import MessageRequest
from switchboard.infrastructure.processor import MessageProcessor
from switchboard.infrastructure.streaming import format_sse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/message", response_model=None)
async def process_message(
    body: MessageRequest,
    processor: MessageProcessor = Depends(get_processor),
) -> dict[str, Any] | StreamingResponse:
    """
    Route and process one message.

    With ``stream=true`` the processor's events are returned as SSE frames,
    one ``event: <type>`` frame per stream event.
    """
    options = ProcessOptions(conversation_id=body.conversation_id, metadata=body.metadata)

    if body.stream:
        events = await prime_stream(processor.stream_message(body.message, options))

        async def sse_generator():
            async for event in events:
                yield format_sse(event.to_dict(), event=event.type.value)

        return StreamingResponse(
            sse_generator(), media_type="text/event-stream", headers=SSE_HEADERS
        )

    result = await processor.process_message(body.message, options)
    return result.to_dict()
