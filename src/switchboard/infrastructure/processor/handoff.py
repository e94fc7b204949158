"""
Handoff Orchestrator - bounded agent-to-agent transfer.

After a response is produced, the orchestrator checks it for a handoff
request. While one is present and the depth limit is not reached it resolves
the named agent, composes the next message, re-fetches history and executes
the target. A missing target stops the chain with the last good response; an
exhausted depth limit logs a warning and stops the same way.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from switchboard.domain.exceptions import HandoffError
from switchboard.domain.model import (
    DEFAULT_MAX_HANDOFF_DEPTH,
    AgentResponse,
    HandoffChain,
    HandoffChainState,
    HandoffRequest,
    HistoryEntry,
)
from switchboard.domain.ports import AgentLookupPort, AgentProtocol, NoopTracer, SpanPort, TracerPort
from switchboard.infrastructure.processor.executor import AgentExecutor
from switchboard.infrastructure.telemetry.metrics import record_handoff

logger = logging.getLogger(__name__)

HistoryProvider = Callable[[], Awaitable[list[HistoryEntry]]]
HopCallback = Callable[["PlannedHop", AgentResponse], Awaitable[None]]


def compose_handoff_message(handoff: HandoffRequest, original_message: str) -> str:
    """Next hop's message: the handoff message (or the original), plus serialized context."""
    message = handoff.message if handoff.message is not None else original_message
    if handoff.context is not None:
        context = json.dumps(handoff.context, separators=(",", ":"), default=str)
        message = f"{message}\n\nContext: {context}"
    return message


@dataclass
class PlannedHop:
    """A resolved next hop."""

    state: HandoffChainState
    target: AgentProtocol
    message: str


@dataclass
class HandoffOutcome:
    """Final response of a chain plus the hops taken."""

    response: AgentResponse
    chain: HandoffChain
    final_agent: AgentProtocol


class HandoffOrchestrator:
    """Runs handoff chains, one per incoming message."""

    def __init__(
        self,
        agent_lookup: AgentLookupPort,
        executor: AgentExecutor,
        max_depth: int = DEFAULT_MAX_HANDOFF_DEPTH,
        tracer: Optional[TracerPort] = None,
    ):
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        self._agent_lookup = agent_lookup
        self._executor = executor
        self._max_depth = max_depth
        self._tracer = tracer or NoopTracer()

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def plan_hop(
        self, handoff: HandoffRequest, from_agent_id: str, original_message: str, depth: int
    ) -> Optional[PlannedHop]:
        """
        Resolve the target of a handoff.

        Args:
            handoff: The request found on the current response
            from_agent_id: Agent that produced the request
            original_message: The message that started the chain
            depth: Depth this hop would have (1 for the first handoff)

        Returns:
            The planned hop, or None when the target agent is not registered
        """
        target = self._agent_lookup.get_agent_optional(handoff.target_agent_id)
        if target is None:
            logger.warning(
                f"[HandoffOrchestrator] Handoff target {handoff.target_agent_id} not found, "
                f"keeping response from {from_agent_id}"
            )
            return None
        return PlannedHop(
            state=HandoffChainState(
                depth=depth,
                from_agent_id=from_agent_id,
                to_agent_id=target.id,
                carried_context=handoff.context,
                message=handoff.message,
            ),
            target=target,
            message=compose_handoff_message(handoff, original_message),
        )

    def depth_exhausted(self, depth: int) -> bool:
        return depth >= self._max_depth

    def warn_max_depth(self, agent_id: str, span: Optional[SpanPort] = None) -> None:
        logger.warning(
            f"[HandoffOrchestrator] Max handoff depth ({self._max_depth}) reached at agent "
            f"{agent_id}, stopping chain"
        )
        if span is not None:
            span.add_event(
                "handoff.max_depth_reached",
                {"handoff.max_depth": self._max_depth, "agent.id": agent_id},
            )

    def start_hop(self, hop: PlannedHop) -> None:
        """Count and log a hop that is about to run."""
        record_handoff(hop.state.from_agent_id, hop.state.to_agent_id)
        logger.info(
            f"[HandoffOrchestrator] Handoff {hop.state.from_agent_id} -> "
            f"{hop.state.to_agent_id} (depth={hop.state.depth})"
        )

    async def execute_hop(
        self,
        hop: PlannedHop,
        history: list[HistoryEntry],
        sequential_visibility: bool = True,
    ) -> AgentResponse:
        """Execute one planned hop, wrapping failures as HandoffError."""
        self.start_hop(hop)
        try:
            return await self._executor.execute(
                hop.target,
                hop.message,
                history,
                sequential_visibility=sequential_visibility,
                route_type="handoff",
            )
        except Exception as e:
            raise HandoffError(hop.state.from_agent_id, hop.state.to_agent_id, cause=e) from e

    async def run(
        self,
        initial_response: AgentResponse,
        initial_agent: AgentProtocol,
        original_message: str,
        history_provider: HistoryProvider,
        sequential_visibility: bool = True,
        on_hop: Optional[HopCallback] = None,
    ) -> HandoffOutcome:
        """
        Follow handoff requests until a terminal response or the depth limit.

        Args:
            initial_response: Response of the first executed agent
            initial_agent: Agent that produced it
            original_message: Message that started the chain
            history_provider: Fetches current history before each hop
            sequential_visibility: Passed through to the executor
            on_hop: Awaited after each hop with the hop and its response

        Returns:
            The last good response and the chain of hops

        Raises:
            HandoffError: If a target agent fails
        """
        chain = HandoffChain(max_depth=self._max_depth)
        current = initial_response
        current_agent = initial_agent

        if current.handoff is None:
            return HandoffOutcome(response=current, chain=chain, final_agent=current_agent)

        span = self._tracer.start_span(
            "handoff.chain",
            {"handoff.initial_agent": initial_agent.id, "handoff.max_depth": self._max_depth},
        )
        try:
            while current.handoff is not None:
                if self.depth_exhausted(chain.depth):
                    chain.max_depth_reached = True
                    self.warn_max_depth(current_agent.id, span)
                    break

                hop = self.plan_hop(
                    current.handoff, current_agent.id, original_message, chain.depth + 1
                )
                if hop is None:
                    chain.stopped_on_missing_agent = current.handoff.target_agent_id
                    span.add_event(
                        "agent.not_found", {"agent.id": current.handoff.target_agent_id}
                    )
                    break

                history = await history_provider()
                current = await self.execute_hop(hop, history, sequential_visibility)
                current_agent = hop.target
                chain.record(hop.state)
                if on_hop is not None:
                    await on_hop(hop, current)

            span.set_attribute("handoff.depth", chain.depth)
            span.set_attribute("handoff.final_agent", current_agent.id)
            span.set_status(True)
        except Exception as e:
            span.record_exception(e)
            span.set_status(False, str(e))
            raise
        finally:
            span.end()

        return HandoffOutcome(response=current, chain=chain, final_agent=current_agent)

