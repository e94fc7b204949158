"""Single-consumption view over one event stream.

A ``StreamResult`` can be read as the full event stream, as text deltas only,
or drained with ``collect()``. The underlying iterator is consumed at most
once; a second consumption raises ``RuntimeError``.
"""

from collections.abc import AsyncIterator
from typing import Optional

from switchboard.domain.events import RunEndEvent, StreamEvent, TokenEvent
from switchboard.domain.model import Usage


class StreamResult:
    """Aggregates text and usage while an event stream is consumed."""

    def __init__(self, events: AsyncIterator[StreamEvent]):
        self._events = events
        self._consumed = False
        self._done = False
        self._text_parts: list[str] = []
        self._usage: Optional[Usage] = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def text(self) -> str:
        """Concatenated token deltas seen so far."""
        return "".join(self._text_parts)

    @property
    def usage(self) -> Optional[Usage]:
        """Usage of the last run that reported one."""
        return self._usage

    def _claim(self) -> None:
        if self._consumed:
            raise RuntimeError("Stream has already been consumed")
        self._consumed = True

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        async for event in self._events:
            if isinstance(event, TokenEvent):
                self._text_parts.append(event.delta)
            elif isinstance(event, RunEndEvent) and event.result.usage is not None:
                self._usage = event.result.usage
            yield event
        self._done = True

    def full_stream(self) -> AsyncIterator[StreamEvent]:
        """Every event, once."""
        self._claim()
        return self._iterate()

    async def text_stream(self) -> AsyncIterator[str]:
        """Token deltas only."""
        self._claim()
        async for event in self._iterate():
            if isinstance(event, TokenEvent) and event.delta:
                yield event.delta

    async def collect(self) -> tuple[str, Optional[Usage], list[StreamEvent]]:
        """Drain the stream and return ``(text, usage, events)``."""
        self._claim()
        events = [event async for event in self._iterate()]
        return self.text, self._usage, events
