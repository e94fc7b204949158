"""Agent executor.

Invokes a resolved agent and normalizes whatever it returns into an
``AgentResponse``. A successful ``handoff_to_agent`` tool call becomes the
response's handoff request when the agent did not set one. Failures are wrapped as ``RouteExecutionError`` tagged with
the route type.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from switchboard.domain.exceptions import MessageProcessorError, RouteExecutionError
from switchboard.domain.model import AgentResponse, HistoryEntry, normalize_response
from switchboard.domain.ports import AgentProtocol, NoopTracer, TracerPort
from switchboard.infrastructure.tools.handoff import handoff_from_tool_calls

logger = logging.getLogger(__name__)


def visible_history(
    previous_messages: Sequence[HistoryEntry], sequential_visibility: bool
) -> list[HistoryEntry]:
    """History an agent may see: everything, or nothing when visibility is off."""
    return list(previous_messages) if sequential_visibility else []


class AgentExecutor:
    """Runs agents and normalizes their results."""

    def __init__(self, tracer: Optional[TracerPort] = None):
        self._tracer = tracer or NoopTracer()

    async def execute(
        self,
        agent: AgentProtocol,
        message: str,
        previous_messages: Sequence[HistoryEntry] = (),
        sequential_visibility: bool = True,
        route_type: str = "agent",
    ) -> AgentResponse:
        """
        Execute an agent.

        Args:
            agent: Agent to run
            message: Message text for this hop
            previous_messages: Conversation history
            sequential_visibility: When False the agent sees no prior turns
            route_type: Tag used when wrapping errors

        Returns:
            Normalized agent response

        Raises:
            RouteExecutionError: If the agent raises or returns an unusable result
        """
        history = visible_history(previous_messages, sequential_visibility)
        span = self._tracer.start_span(
            "agent.execute",
            {
                "agent.id": agent.id,
                "route.type": route_type,
                "message.length": len(message),
                "history.length": len(history),
            },
        )
        try:
            raw = await agent.process_message(message, history)
            response = normalize_response(raw)
            if response.handoff is None:
                response.handoff = handoff_from_tool_calls(response.tool_calls)
            span.set_attribute("response.length", len(response.content))
            span.set_attribute("response.tool_calls", len(response.tool_calls))
            span.set_attribute("response.has_handoff", response.handoff is not None)
            span.set_status(True)
            return response
        except MessageProcessorError as e:
            span.record_exception(e)
            span.set_status(False, str(e))
            raise
        except Exception as e:
            logger.error(f"[AgentExecutor] Agent {agent.id} failed: {e}")
            span.record_exception(e)
            span.set_status(False, str(e))
            raise RouteExecutionError(route_type, cause=e) from e
        finally:
            span.end()
