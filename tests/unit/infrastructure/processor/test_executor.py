"""Unit tests for the agent executor."""

import pytest

from switchboard.domain.exceptions import MessageValidationError, RouteExecutionError
from switchboard.domain.model import AgentResponse, HandoffRequest, HistoryEntry
from switchboard.infrastructure.processor import AgentExecutor, visible_history


@pytest.mark.unit
class TestAgentExecutor:
    async def test_normalizes_plain_text(self, make_agent):
        executor = AgentExecutor()

        response = await executor.execute(make_agent("a", responses="hello"), "hi")

        assert response == AgentResponse(content="hello")

    async def test_normalizes_camel_case_mapping(self, make_agent):
        agent = make_agent(
            "a",
            responses={
                "content": "moving you",
                "toolCalls": [{"toolName": "lookup", "input": {"id": 1}, "output": "found"}],
                "handoff": {"agentId": "billing", "message": "refund"},
                "usage": {"inputTokens": 3, "outputTokens": 4, "totalTokens": 7},
            },
        )

        response = await AgentExecutor().execute(agent, "hi")

        assert response.tool_calls[0].tool_id == "lookup"
        assert response.tool_calls[0].result == "found"
        assert response.handoff == HandoffRequest(target_agent_id="billing", message="refund")
        assert response.usage.total_tokens == 7

    async def test_handoff_tool_call_becomes_handoff(self, make_agent):
        agent = make_agent(
            "a",
            responses={
                "content": "",
                "tool_calls": [
                    {
                        "tool_id": "handoff_to_agent",
                        "args": {"agentId": "billing"},
                        "result": {
                            "type": "handoff",
                            "agentId": "billing",
                            "message": "",
                            "context": {"order": 7},
                        },
                    }
                ],
            },
        )

        response = await AgentExecutor().execute(agent, "hi")

        assert response.handoff == HandoffRequest(
            target_agent_id="billing", message=None, context={"order": 7}
        )

    async def test_visibility_off_hides_history(self, make_agent):
        agent = make_agent("a")
        history = [HistoryEntry.user("earlier"), HistoryEntry.assistant("reply")]

        await AgentExecutor().execute(agent, "now", history, sequential_visibility=False)
        await AgentExecutor().execute(agent, "again", history, sequential_visibility=True)

        assert agent.calls[0] == ("now", [])
        assert agent.calls[1] == ("again", history)

    async def test_agent_failure_wrapped_with_route_type(self, make_failing_agent, tracer):
        executor = AgentExecutor(tracer=tracer)

        with pytest.raises(RouteExecutionError) as exc_info:
            await executor.execute(
                make_failing_agent("a", RuntimeError("model down")), "hi", route_type="default"
            )

        assert exc_info.value.route_type == "default"
        assert str(exc_info.value.cause) == "model down"
        span = tracer.named("agent.execute")[0]
        assert span.status is False
        assert span.ended is True

    async def test_unusable_result_wrapped(self, make_agent):
        with pytest.raises(RouteExecutionError):
            await AgentExecutor().execute(make_agent("a", responses=42), "hi")

    async def test_processor_errors_pass_through(self, make_failing_agent):
        agent = make_failing_agent("a", MessageValidationError("bad"))

        with pytest.raises(MessageValidationError):
            await AgentExecutor().execute(agent, "hi")

    async def test_span_attributes(self, make_agent, tracer):
        await AgentExecutor(tracer=tracer).execute(make_agent("a", responses="abc"), "hi")

        span = tracer.named("agent.execute")[0]
        assert span.attributes["agent.id"] == "a"
        assert span.attributes["response.length"] == 3
        assert span.attributes["response.has_handoff"] is False
        assert span.status is True

    def test_visible_history_copies(self):
        entries = [HistoryEntry.user("x")]

        visible = visible_history(entries, True)

        assert visible == entries
        assert visible is not entries
