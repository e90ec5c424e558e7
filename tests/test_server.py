import pytest
from fastapi.testclient import TestClient

from shellagent.ollama import GenerationFailed, ServiceUnavailable
from shellagent.response import CommandResponse
from shellagent.server import create_app


class FakeAgent:
    def __init__(self, result):
        self.result = result
        self.prompts = []

    def generate_command(self, text):
        self.prompts.append(text)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def client_for(result):
    agent = FakeAgent(result)
    return TestClient(create_app(agent_factory=lambda: agent)), agent


def test_generate_command_returns_response():
    client, agent = client_for(CommandResponse(command="ls -la", explanation="list", confidence=0.9))
    resp = client.post("/generate_command", json={"input": "list files"})
    assert resp.status_code == 200
    assert resp.json() == {
        "command": "ls -la",
        "explanation": "list",
        "warning": "",
        "confidence": 0.9,
        "alternatives": [],
    }
    assert agent.prompts == ["list files"]


def test_prompt_key_is_accepted():
    client, agent = client_for(CommandResponse(command="pwd", confidence=0.8))
    assert client.post("/generate_command", json={"prompt": "where am i"}).status_code == 200
    assert agent.prompts == ["where am i"]


@pytest.mark.parametrize("body", [{}, {"input": ""}, {"input": 3}])
def test_missing_input(body):
    client, agent = client_for(CommandResponse(command="pwd"))
    assert client.post("/generate_command", json=body).status_code == 400
    assert agent.prompts == []


@pytest.mark.parametrize("exc, status", [
    (ServiceUnavailable("down"), 503),
    (GenerationFailed("bad"), 502),
])
def test_provider_errors(exc, status):
    client, _ = client_for(exc)
    resp = client.post("/generate_command", json={"input": "list files"})
    assert resp.status_code == status
    assert resp.json()["detail"] in ("down", "bad")


def test_health():
    client, _ = client_for(CommandResponse())
    assert client.get("/health").json() == {"status": "ok"}
