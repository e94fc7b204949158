"""
Agent Ports - Domain interfaces for agents and agent lookup.

Agents are consumed through these narrow contracts; how an agent talks to a
language model or discovers tools is not part of this package.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional, Protocol, runtime_checkable

from switchboard.domain.events import StreamEvent
from switchboard.domain.model import HistoryEntry, SemanticMatcher, UtteranceMatch


@runtime_checkable
class AgentProtocol(Protocol):
    """
    Protocol for an executable agent.

    Attributes:
        id: Unique agent identifier
        persist_history: Whether exchanges with this agent are written to history

    ``process_message`` may return an AgentResponse, a mapping with
    ``content``/``tool_calls``/``handoff`` keys, or plain text.
    """

    id: str
    persist_history: bool

    async def process_message(
        self, message: str, previous_messages: Sequence[HistoryEntry]
    ) -> Any:
        """
        Produce a single response for a message.

        Args:
            message: Message text (user text or composed handoff message)
            previous_messages: Visible conversation history

        Returns:
            The agent's response
        """
        ...


@runtime_checkable
class StreamingAgentProtocol(AgentProtocol, Protocol):
    """Agent that natively emits stream events."""

    def stream_events(
        self, message: str, previous_messages: Sequence[HistoryEntry]
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream events for a message.

        A ``run-end`` event whose result carries a handoff requests a transfer.
        """
        ...


def supports_streaming(agent: AgentProtocol) -> bool:
    """Check whether an agent natively streams events."""
    return callable(getattr(agent, "stream_events", None))


def should_persist_history(agent: Optional[AgentProtocol]) -> bool:
    """Agents persist history unless they opt out explicitly."""
    if agent is None:
        return True
    return getattr(agent, "persist_history", True) is not False


@runtime_checkable
class AgentLookupPort(Protocol):
    """Protocol for resolving agents by id or by utterance."""

    def get_agent_optional(self, agent_id: str) -> Optional[AgentProtocol]:
        """Return the agent, or None when it is not registered."""
        ...

    def list_agent_ids(self) -> list[str]:
        """Registered agent ids in registration order."""
        ...

    async def match_agent_by_utterance(
        self, message: str, semantic_matcher: Optional[SemanticMatcher] = None
    ) -> Optional[UtteranceMatch]:
        """Match a message against each agent's own utterance list."""
        ...
