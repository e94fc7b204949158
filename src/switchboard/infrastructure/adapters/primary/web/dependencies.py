"""FastAPI dependencies resolving app-scoped collaborators."""

from collections.abc import AsyncIterator

from fastapi import Request

from switchboard.configuration.config import Settings
from switchboard.domain.events import StreamEvent
from switchboard.infrastructure.processor import MessageProcessor


def get_processor(request: Request) -> MessageProcessor:
    return request.app.state.processor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def prime_stream(events: AsyncIterator[StreamEvent]) -> AsyncIterator[StreamEvent]:
    """
    Pull the first event before the response starts.

    Validation, routing and the first execution fail before any event is
    produced, so priming lets those errors become proper HTTP statuses
    instead of a broken 200 stream.
    """
    try:
        first = await events.__anext__()
    except StopAsyncIteration:
        first = None

    async def replay() -> AsyncIterator[StreamEvent]:
        if first is None:
            return
        yield first
        async for event in events:
            yield event

    return replay()
