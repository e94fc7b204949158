"""Options and results for processing one message."""

from dataclasses import dataclass, field
from typing import Any

from switchboard.domain.model.handoff import HandoffChain
from switchboard.domain.model.response import AgentResponse
from switchboard.domain.model.routing import RouteResult


@dataclass(kw_only=True)
class ProcessOptions:
    """Per-call options for ``process_message`` and ``stream_message``.

    ``None`` fields fall back to the processor configuration.
    """

    conversation_id: str | None = None
    sequential_visibility: bool | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(kw_only=True)
class ProcessResult:
    """Final outcome of processing one message."""

    response: AgentResponse
    conversation_id: str
    route: RouteResult
    handoff_chain: HandoffChain = field(default_factory=HandoffChain)

    @property
    def final_agent_id(self) -> str | None:
        if self.handoff_chain.hops:
            return self.handoff_chain.hops[-1].to_agent_id
        return self.route.agent_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "route": self.route.to_dict(),
            "response": self.response.to_dict(),
            "agentId": self.final_agent_id,
            "handoff": self.handoff_chain.to_dict(),
        }
