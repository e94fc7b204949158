"""Intent Action Port - Domain interface for intent action handlers."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from switchboard.domain.model import AgentResponse, HistoryEntry, IntentAction, IntentMatch


@runtime_checkable
class IntentActionHandler(Protocol):
    """Handles one intent action type (agent, pipeline, function).

    ``previous_messages`` is already filtered for visibility; ``options`` carries
    the routing context (``conversation_id``, ``sequential_visibility``,
    ``metadata``).
    """

    async def __call__(
        self,
        action: IntentAction,
        match: IntentMatch,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: Mapping[str, Any],
    ) -> AgentResponse:
        ...
