"""
Handoff Tool for transferring a conversation to another agent.

Agents that can delegate expose this tool to their model. The tool itself only
validates the target and returns a handoff result; the message processor turns
that result into a ``HandoffRequest`` and runs the next hop.

``context`` is accepted as a JSON string so the schema stays valid for strict
tool-calling modes that reject free-form objects.
"""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from switchboard.domain.exceptions import AgentNotFoundError, MessageValidationError
from switchboard.domain.model import HandoffRequest, ToolCallRecord
from switchboard.domain.ports import AgentLookupPort, NoopTracer, TracerPort

logger = logging.getLogger(__name__)

HANDOFF_TOOL_NAME = "handoff_to_agent"

HANDOFF_TOOL_DESCRIPTION = (
    "Transfer the conversation to another agent. Use this when the current agent "
    "cannot handle the request and another agent would be better suited."
)

HANDOFF_PARAMETERS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "agentId": {
            "type": "string",
            "description": "The ID of the agent to transfer the conversation to",
        },
        "message": {
            "type": "string",
            "description": (
                "The message to send to the target agent. "
                "If not provided, the original user message will be used."
            ),
        },
        "context": {
            "type": "string",
            "description": "Optional JSON-stringified context object to pass to the target agent",
        },
    },
    "required": ["agentId"],
}


def parse_handoff_context(raw: Any) -> Optional[dict[str, Any]]:
    """Parse the context argument; unparseable text is kept under ``raw``."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, Mapping):
        return dict(raw)
    if not isinstance(raw, str):
        return {"raw": raw}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {"raw": raw}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}


def execute_handoff_tool(
    args: Mapping[str, Any], available_agent_ids: Sequence[str]
) -> dict[str, Any]:
    """
    Run the handoff tool against a set of known agents.

    Args:
        args: Tool arguments (``agentId``, optional ``message`` and ``context``)
        available_agent_ids: Agents that can receive the conversation

    Returns:
        ``{"type": "handoff", "agentId", "message", "context"}``

    Raises:
        MessageValidationError: If ``agentId`` is missing
        AgentNotFoundError: If the target agent is not available
    """
    agent_id = args.get("agentId")
    if not isinstance(agent_id, str) or not agent_id:
        raise MessageValidationError(
            "handoff_to_agent requires an agentId", details={"args": dict(args)}
        )
    if agent_id not in available_agent_ids:
        logger.warning(
            f"[HandoffTool] Agent {agent_id} not found. "
            f"Available agents: {', '.join(available_agent_ids) or 'none'}"
        )
        raise AgentNotFoundError(agent_id)

    return {
        "type": "handoff",
        "agentId": agent_id,
        "message": args.get("message") or "",
        "context": parse_handoff_context(args.get("context")),
    }


def handoff_from_tool_calls(tool_calls: Iterable[ToolCallRecord]) -> Optional[HandoffRequest]:
    """
    Extract a handoff request from a response's tool calls.

    The first successful ``handoff_to_agent`` call wins. An empty message means
    the original user message is forwarded.
    """
    for call in tool_calls:
        if call.tool_id != HANDOFF_TOOL_NAME or call.error is not None:
            continue
        result = call.output
        if not isinstance(result, Mapping) or result.get("type") != "handoff":
            continue
        agent_id = result.get("agentId")
        if not agent_id:
            continue
        return HandoffRequest(
            target_agent_id=agent_id,
            message=result.get("message") or None,
            context=result.get("context"),
        )
    return None


class HandoffTool:
    """
    Tool object for agents that delegate to other agents.

    Usage:
        tool = HandoffTool(agent_registry)
        result = await tool.execute(agentId="billing", message="refund please")
    """

    name = HANDOFF_TOOL_NAME
    description = HANDOFF_TOOL_DESCRIPTION

    def __init__(self, agent_lookup: AgentLookupPort, tracer: Optional[TracerPort] = None):
        self._agent_lookup = agent_lookup
        self._tracer = tracer or NoopTracer()

    def get_parameters_schema(self) -> dict[str, Any]:
        return HANDOFF_PARAMETERS_SCHEMA

    def to_openai_tool(self) -> dict[str, Any]:
        """Tool definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.get_parameters_schema(),
            },
        }

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        """Validate the target and return the handoff result."""
        span = self._tracer.start_span(
            "tool.handoff",
            {
                "tool.id": self.name,
                "handoff.target_agent": kwargs.get("agentId"),
                "handoff.has_message": bool(kwargs.get("message")),
                "handoff.has_context": bool(kwargs.get("context")),
            },
        )
        try:
            result = execute_handoff_tool(kwargs, self._agent_lookup.list_agent_ids())
            span.set_status(True)
            return result
        except Exception as e:
            span.record_exception(e)
            span.set_status(False, str(e))
            raise
        finally:
            span.end()
