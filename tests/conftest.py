"""Pytest configuration and shared fixtures for testing."""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

import pytest

from switchboard.configuration.config import Settings, get_settings
from switchboard.domain.events import StreamEvent
from switchboard.domain.model import HistoryEntry
from switchboard.infrastructure.adapters.secondary import (
    InMemoryAgentRegistry,
    InMemoryConversationHistory,
    InMemoryPipelineRegistry,
)
from switchboard.infrastructure.telemetry import config as telemetry_config
from switchboard.infrastructure.telemetry import metrics as telemetry_metrics

# --- Test doubles ---


class FakeAgent:
    """Agent returning scripted responses and recording every call."""

    def __init__(
        self,
        agent_id: str,
        responses: Any = "ok",
        persist_history: bool = True,
        utterances: Sequence[str] = (),
    ):
        self.id = agent_id
        self.persist_history = persist_history
        self.utterances = tuple(utterances)
        self._responses = responses
        self.calls: list[tuple[str, list[HistoryEntry]]] = []

    async def process_message(self, message: str, previous_messages: Sequence[HistoryEntry]) -> Any:
        self.calls.append((message, list(previous_messages)))
        if callable(self._responses):
            return self._responses(message, list(previous_messages))
        if isinstance(self._responses, list):
            index = min(len(self.calls), len(self._responses)) - 1
            return self._responses[index]
        return self._responses


class StreamingFakeAgent(FakeAgent):
    """Agent that natively streams a scripted list of events."""

    def __init__(
        self,
        agent_id: str,
        events: Callable[[str], list[StreamEvent]],
        persist_history: bool = True,
        utterances: Sequence[str] = (),
    ):
        super().__init__(agent_id, persist_history=persist_history, utterances=utterances)
        self._events = events
        self.stream_calls: list[tuple[str, list[HistoryEntry]]] = []

    async def stream_events(self, message: str, previous_messages: Sequence[HistoryEntry]):
        self.stream_calls.append((message, list(previous_messages)))
        for event in self._events(message):
            yield event


class FailingAgent(FakeAgent):
    def __init__(self, agent_id: str, error: Exception):
        super().__init__(agent_id)
        self._error = error

    async def process_message(self, message: str, previous_messages: Sequence[HistoryEntry]) -> Any:
        self.calls.append((message, list(previous_messages)))
        raise self._error


class RecordingSpan:
    def __init__(self, name: str, attributes: Optional[Mapping[str, Any]] = None):
        self.name = name
        self.attributes: dict[str, Any] = dict(attributes or {})
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.status: Optional[bool] = None
        self.exceptions: list[BaseException] = []
        self.ended = False

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self.events.append((name, dict(attributes or {})))

    def set_status(self, ok: bool, description: Optional[str] = None) -> None:
        self.status = ok

    def record_exception(self, exception: BaseException) -> None:
        self.exceptions.append(exception)

    def end(self) -> None:
        self.ended = True


class RecordingTracer:
    def __init__(self) -> None:
        self.spans: list[RecordingSpan] = []

    def start_span(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> RecordingSpan:
        span = RecordingSpan(name, attributes)
        self.spans.append(span)
        return span

    def named(self, name: str) -> list[RecordingSpan]:
        return [span for span in self.spans if span.name == name]


# --- Global state ---


@pytest.fixture(autouse=True)
def reset_global_state():
    """Keep telemetry providers and cached settings isolated per test."""
    telemetry_config._reset_providers()
    telemetry_metrics._reset_instruments()
    get_settings.cache_clear()
    yield
    telemetry_config._reset_providers()
    telemetry_metrics._reset_instruments()
    get_settings.cache_clear()


# --- Fixtures ---


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, USE_SEMANTIC_MATCHING=False, ENABLE_TELEMETRY=False)


@pytest.fixture
def history() -> InMemoryConversationHistory:
    return InMemoryConversationHistory()


@pytest.fixture
def pipelines() -> InMemoryPipelineRegistry:
    return InMemoryPipelineRegistry()


@pytest.fixture
def tracer() -> RecordingTracer:
    return RecordingTracer()


@pytest.fixture
def make_agent() -> Callable[..., FakeAgent]:
    return FakeAgent


@pytest.fixture
def make_streaming_agent() -> Callable[..., StreamingFakeAgent]:
    return StreamingFakeAgent


@pytest.fixture
def make_failing_agent() -> Callable[..., FailingAgent]:
    return FailingAgent


@pytest.fixture
def registry_of() -> Callable[..., InMemoryAgentRegistry]:
    def build(*agents: FakeAgent) -> InMemoryAgentRegistry:
        return InMemoryAgentRegistry(agents)

    return build
