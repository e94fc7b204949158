"""Unit tests for the handoff_to_agent tool."""

import pytest

from switchboard.domain.exceptions import AgentNotFoundError, MessageValidationError
from switchboard.domain.model import HandoffRequest, ToolCallRecord, ToolError
from switchboard.infrastructure.tools import (
    HANDOFF_TOOL_NAME,
    HandoffTool,
    execute_handoff_tool,
    handoff_from_tool_calls,
    parse_handoff_context,
)


@pytest.fixture
def tool(registry_of, make_agent, tracer):
    return HandoffTool(registry_of(make_agent("support"), make_agent("billing")), tracer=tracer)


# ============================================================================
# Context parsing
# ============================================================================


@pytest.mark.unit
class TestParseHandoffContext:
    def test_empty(self):
        assert parse_handoff_context(None) is None
        assert parse_handoff_context("") is None

    def test_json_object(self):
        assert parse_handoff_context('{"order": 7}') == {"order": 7}

    def test_mapping_passthrough(self):
        assert parse_handoff_context({"a": 1}) == {"a": 1}

    def test_invalid_json_kept_raw(self):
        assert parse_handoff_context("not json") == {"raw": "not json"}

    def test_non_object_json_kept_raw(self):
        assert parse_handoff_context("[1, 2]") == {"raw": [1, 2]}


# ============================================================================
# Tool execution
# ============================================================================


@pytest.mark.unit
class TestHandoffTool:
    def test_schema(self, tool):
        definition = tool.to_openai_tool()

        assert definition["type"] == "function"
        assert definition["function"]["name"] == HANDOFF_TOOL_NAME
        assert definition["function"]["parameters"]["required"] == ["agentId"]

    async def test_execute(self, tool, tracer):
        result = await tool.execute(agentId="billing", message="refund", context='{"id": 3}')

        assert result == {
            "type": "handoff",
            "agentId": "billing",
            "message": "refund",
            "context": {"id": 3},
        }
        span = tracer.named("tool.handoff")[0]
        assert span.attributes["handoff.target_agent"] == "billing"
        assert span.status is True

    async def test_unknown_agent(self, tool, tracer):
        with pytest.raises(AgentNotFoundError):
            await tool.execute(agentId="ghost")

        assert tracer.named("tool.handoff")[0].status is False

    def test_missing_agent_id(self):
        with pytest.raises(MessageValidationError):
            execute_handoff_tool({"message": "hi"}, ["support"])

    def test_message_defaults_to_empty(self):
        result = execute_handoff_tool({"agentId": "support"}, ["support"])

        assert result["message"] == ""
        assert result["context"] is None


# ============================================================================
# Handoff extraction
# ============================================================================


@pytest.mark.unit
class TestHandoffFromToolCalls:
    def _call(self, result, error=None, tool_id=HANDOFF_TOOL_NAME):
        return ToolCallRecord(tool_id=tool_id, result=result, error=error)

    def test_successful_call(self):
        calls = [
            self._call({"type": "handoff", "agentId": "billing", "message": "", "context": None})
        ]

        assert handoff_from_tool_calls(calls) == HandoffRequest(target_agent_id="billing")

    def test_failed_call_ignored(self):
        calls = [
            self._call(
                {"type": "handoff", "agentId": "billing"},
                error=ToolError(code="AGENT_NOT_FOUND", message="missing"),
            )
        ]

        assert handoff_from_tool_calls(calls) is None

    def test_other_tools_ignored(self):
        calls = [self._call({"type": "handoff", "agentId": "x"}, tool_id="search")]

        assert handoff_from_tool_calls(calls) is None

    def test_first_handoff_wins(self):
        calls = [
            self._call({"type": "handoff", "agentId": "first", "message": "one"}),
            self._call({"type": "handoff", "agentId": "second"}),
        ]

        assert handoff_from_tool_calls(calls).target_agent_id == "first"
