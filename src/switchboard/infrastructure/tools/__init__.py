"""Tools exposed to agents."""

from switchboard.infrastructure.tools.handoff import (
    HANDOFF_PARAMETERS_SCHEMA,
    HANDOFF_TOOL_NAME,
    HandoffTool,
    execute_handoff_tool,
    handoff_from_tool_calls,
    parse_handoff_context,
)

__all__ = [
    "HANDOFF_PARAMETERS_SCHEMA",
    "HANDOFF_TOOL_NAME",
    "HandoffTool",
    "execute_handoff_tool",
    "handoff_from_tool_calls",
    "parse_handoff_context",
]
