"""Unit tests for the intent action router."""

import pytest

from switchboard.domain.exceptions import ActionHandlerNotFoundError, AgentNotFoundError
from switchboard.domain.model import (
    ActionType,
    AgentResponse,
    Intent,
    IntentAction,
    IntentMatch,
    MatchType,
)
from switchboard.infrastructure.routing import IntentActionRouter


def _match(action_type, target, payload=None):
    intent = Intent(
        id="intent-1",
        utterances=["x"],
        action=IntentAction(type=action_type, target=target, payload=payload),
    )
    return IntentMatch(intent=intent, confidence=1.0, match_type=MatchType.EXACT)


@pytest.mark.unit
class TestIntentActionRouter:
    async def test_agent_action_runs_agent(self, registry_of, make_agent):
        agent = make_agent("helper", responses="from agent")
        router = IntentActionRouter(agent_lookup=registry_of(agent))

        response = await router.route_intent(_match(ActionType.AGENT, "helper"), "hi")

        assert response.content == "from agent"
        assert agent.calls == [("hi", [])]

    async def test_agent_action_missing_agent(self, registry_of):
        router = IntentActionRouter(agent_lookup=registry_of())

        with pytest.raises(AgentNotFoundError):
            await router.route_intent(_match(ActionType.AGENT, "ghost"), "hi")

    async def test_pipeline_action_passes_payload(self, pipelines):
        received = {}

        async def handler(message, history, options):
            received.update(options)
            return AgentResponse(content="done")

        pipelines.register("etl", handler)
        router = IntentActionRouter(pipelines=pipelines)

        response = await router.route_intent(
            _match(ActionType.PIPELINE, "etl", {"batch": 3}), "run etl"
        )

        assert response.content == "done"
        assert received == {"batch": 3}

    async def test_pipeline_action_merges_routing_options(self, pipelines):
        received = {}

        async def handler(message, history, options):
            received["history"] = history
            received["options"] = options
            return AgentResponse(content="done")

        pipelines.register("etl", handler)
        router = IntentActionRouter(pipelines=pipelines)

        await router.route_intent(
            _match(ActionType.PIPELINE, "etl", {"batch": 3, "conversation_id": "spoofed"}),
            "run etl",
            [],
            {"conversation_id": "c1", "sequential_visibility": False, "metadata": {}},
        )

        assert received["history"] == []
        assert received["options"] == {
            "batch": 3,
            "conversation_id": "c1",
            "sequential_visibility": False,
            "metadata": {},
        }

    async def test_async_function_action(self):
        async def lookup(message, payload):
            return {"content": "found", "tool_calls": []}

        router = IntentActionRouter()
        router.register_function("lookup", lookup)

        response = await router.route_intent(_match(ActionType.FUNCTION, "lookup"), "find")

        assert response.content == "found"

    async def test_missing_handler(self):
        router = IntentActionRouter()

        assert router.has_handler(ActionType.FUNCTION)
        assert not router.has_handler(ActionType.PIPELINE)
        with pytest.raises(ActionHandlerNotFoundError):
            await router.route_intent(_match(ActionType.PIPELINE, "etl"), "run")

    async def test_custom_handler_replaces_default(self):
        async def handler(action, match, message, previous_messages, options):
            return AgentResponse(content=f"custom:{action.target}")

        router = IntentActionRouter()
        router.register_handler(ActionType.FUNCTION, handler)

        response = await router.route_intent(_match(ActionType.FUNCTION, "any"), "go")

        assert response.content == "custom:any"
