"""Unit tests for the HTTP surface."""

import json

import pytest
from fastapi.testclient import TestClient

from switchboard import __version__
from switchboard.configuration.config import Settings
from switchboard.configuration.factories import create_message_processor
from switchboard.domain.model import AgentResponse, HandoffRequest
from switchboard.infrastructure.adapters.primary.web import create_app


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        _env_file=None,
        USE_SEMANTIC_MATCHING=False,
        DEFAULT_AGENT_ID="general",
        SERVICE_NAME="switchboard-test",
        DEFAULT_MODEL_NAME="switchboard-model",
    )


@pytest.fixture
def client(app_settings, history, make_agent):
    general = make_agent(
        "general",
        responses=lambda message, previous: (
            AgentResponse(content="Transferring", handoff=HandoffRequest(target_agent_id="b"))
            if message == "transfer"
            else f"echo: {message}"
        ),
    )
    processor = create_message_processor(
        agents=[general, make_agent("b", responses="from b")],
        history=history,
        settings=app_settings,
    )
    with TestClient(create_app(processor, app_settings)) as test_client:
        yield test_client


@pytest.fixture
def strict_client(app_settings, make_agent):
    settings = app_settings.model_copy(update={"default_agent_id": None})
    processor = create_message_processor(agents=[make_agent("other")], settings=settings)
    return TestClient(create_app(processor, settings))


def _sse_payloads(body: str) -> list[tuple[str | None, str]]:
    frames = []
    for block in body.strip().split("\n\n"):
        event = None
        data = None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = line[len("data: "):]
        frames.append((event, data))
    return frames


# ============================================================================
# Health
# ============================================================================


@pytest.mark.unit
class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "switchboard-test",
            "version": __version__,
        }


# ============================================================================
# /message
# ============================================================================


@pytest.mark.unit
class TestMessageEndpoint:
    def test_process(self, client):
        response = client.post("/message", json={"message": "hello", "conversation_id": "c1"})

        assert response.status_code == 200
        body = response.json()
        assert body["conversationId"] == "c1"
        assert body["response"]["content"] == "echo: hello"
        assert body["route"]["type"] == "default"
        assert body["agentId"] == "general"

    def test_handoff(self, client):
        body = client.post("/message", json={"message": "transfer"}).json()

        assert body["response"]["content"] == "from b"
        assert body["agentId"] == "b"
        assert body["handoff"]["depth"] == 1

    def test_validation_error_is_400(self, client):
        response = client.post("/message", json={"message": "   "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MESSAGE_VALIDATION_ERROR"

    def test_no_route_is_404(self, strict_client):
        response = strict_client.post("/message", json={"message": "hello"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NO_ROUTE_FOUND"

    def test_stream(self, client):
        response = client.post("/message", json={"message": "transfer", "stream": True})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = _sse_payloads(response.text)
        types = [event for event, _ in frames]
        assert types[0] == "run-start"
        assert "handoff-start" in types
        assert types[-1] == "run-end"
        sequences = [json.loads(data)["sequence"] for _, data in frames]
        assert sequences == list(range(len(frames)))

    def test_stream_errors_before_first_event(self, strict_client):
        response = strict_client.post("/message", json={"message": "hello", "stream": True})

        assert response.status_code == 404


# ============================================================================
# /v1/chat/completions
# ============================================================================


@pytest.mark.unit
class TestChatCompletionsEndpoint:
    def test_completion(self, client):
        response = client.post(
            "/v1/chat/completions",
            json={
                "messages": [
                    {"role": "user", "content": "earlier"},
                    {"role": "assistant", "content": "ok"},
                    {"role": "user", "content": "now"},
                ],
                "conversation_id": "c9",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["object"] == "chat.completion"
        assert body["model"] == "switchboard-model"
        assert body["choices"][0]["message"]["content"] == "echo: now"
        assert body["conversation_id"] == "c9"

    def test_last_message_must_be_user(self, client):
        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "assistant", "content": "hi"}]},
        )

        assert response.status_code == 400

    def test_empty_messages_rejected(self, client):
        response = client.post("/v1/chat/completions", json={"messages": []})

        assert response.status_code == 422

    def test_stream(self, client):
        response = client.post(
            "/v1/chat/completions",
            json={"model": "custom", "stream": True, "messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        frames = _sse_payloads(response.text)
        assert frames[-1] == (None, "[DONE]")
        chunks = [json.loads(data) for _, data in frames[:-1]]
        assert chunks[0]["choices"][0]["delta"] == {"role": "assistant"}
        assert chunks[-1]["object"] == "chat.completion"
        assert chunks[-1]["model"] == "custom"
        assert chunks[-1]["choices"][0]["message"]["content"] == "echo: hi"
