"""Request schemas for the HTTP surface."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    """Body of ``POST /message``."""

    message: str = Field(..., description="User message to route and process")
    conversation_id: Optional[str] = Field(None, description="Existing conversation to continue")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Routing metadata")
    stream: bool = Field(False, description="Return stream events as SSE")


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[str] = None


class ChatCompletionRequest(BaseModel):
    """Body of ``POST /v1/chat/completions`` (OpenAI-compatible subset)."""

    model: Optional[str] = None
    messages: list[ChatMessage] = Field(..., min_length=1)
    stream: bool = False
    conversation_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
