"""OpenAI-compatible chat completions router."""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from switchboard.configuration.config import Settings
from switchboard.domain.model import ProcessOptions
from switchboard.infrastructure.adapters.primary.web.dependencies import (
    get_app_settings,
    get_processor,
    prime_stream,
)
from switchboard.infrastructure.adapters.primary.web.routers.messages import SSE_HEADERS
from switchboard.infrastructure.adapters.primary.web.schemas import ChatCompletionRequest
from switchboard.infrastructure.processor import MessageProcessor
from switchboard.infrastructure.streaming import chat_completion, to_sse_stream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["chat"])


@router.post("/chat/completions", response_model=None)
async def chat_completions(
    body: ChatCompletionRequest,
    processor: MessageProcessor = Depends(get_processor),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any] | StreamingResponse:
    """
    Process an OpenAI-style conversation.

    The last message must be from the user; earlier messages are passed to
    the handling agent as previous messages.
    """
    model = body.model or settings.default_model_name
    messages = [message.model_dump() for message in body.messages]
    options = ProcessOptions(conversation_id=body.conversation_id, metadata=body.metadata)

    if body.stream:
        events = await prime_stream(processor.stream_chat_message(messages, options))
        return StreamingResponse(
            to_sse_stream(events, model), media_type="text/event-stream", headers=SSE_HEADERS
        )

    result = await processor.process_chat_message(messages, options)
    payload = chat_completion(
        f"chatcmpl-{result.conversation_id}", model, result.response, created=int(time.time())
    )
    payload["conversation_id"] = result.conversation_id
    return payload
