"""Handoff chain state.

Lives for the duration of one message only. Its effects are persisted as
ordinary history entries and, in the streaming path, ``handoff-start`` events.
"""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_MAX_HANDOFF_DEPTH = 10


@dataclass(frozen=True, kw_only=True)
class HandoffChainState:
    """One hop of a handoff chain."""

    depth: int
    from_agent_id: str
    to_agent_id: str
    carried_context: dict[str, Any] | None = None
    message: str | None = None


@dataclass(kw_only=True)
class HandoffChain:
    """Hops taken while processing one message."""

    max_depth: int = DEFAULT_MAX_HANDOFF_DEPTH
    hops: list[HandoffChainState] = field(default_factory=list)
    max_depth_reached: bool = False
    stopped_on_missing_agent: str | None = None

    @property
    def depth(self) -> int:
        return len(self.hops)

    @property
    def agent_ids(self) -> list[str]:
        """Agents that handled the message, in order (after the first)."""
        return [hop.to_agent_id for hop in self.hops]

    def record(self, hop: HandoffChainState) -> None:
        self.hops.append(hop)

    def to_dict(self) -> dict[str, Any]:
        return {
            "depth": self.depth,
            "maxDepthReached": self.max_depth_reached,
            "hops": [
                {"from": hop.from_agent_id, "to": hop.to_agent_id, "depth": hop.depth}
                for hop in self.hops
            ],
        }
