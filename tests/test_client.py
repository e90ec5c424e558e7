import json

import httpx
import pytest
import respx

from conftest import GENERATE_URL, TAGS_URL, tags_payload
from shellagent.client import ModelNotAvailable, NoModelConfigured, ShellAgent
from shellagent.models import ModelRegistry
from shellagent.ollama import GenerationFailed, ServiceUnavailable
from shellagent.response import FALLBACK_CONFIDENCE, FALLBACK_WARNING


def generate_reply(text):
    return httpx.Response(200, json={"model": "llama3.2:3b", "response": text, "done": True})


@pytest.fixture
def agent(config, ollama):
    return ShellAgent(config, ollama)


@respx.mock
def test_generate_command_structured(agent, config):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload("llama3.2:3b")))
    route = respx.post(GENERATE_URL).mock(
        return_value=generate_reply('{"command":"ls -la","explanation":"x","confidence":0.9}')
    )
    response = agent.generate_command("  list all files  ")
    assert response.command == "ls -la"
    assert response.confidence == 0.9
    assert response.warning == ""

    sent = json.loads(route.calls.last.request.content)
    assert sent["model"] == "llama3.2:3b"
    assert sent["system"] == config.ai.system_prompt
    assert sent["options"] == {"temperature": config.ai.temperature, "num_predict": config.ai.max_tokens}
    assert "User Request: list all files\n" in sent["prompt"]


@respx.mock
def test_generate_command_applies_safety(agent):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload("llama3.2:3b")))
    respx.post(GENERATE_URL).mock(
        return_value=generate_reply(
            '{"command": "rm -rf ./build", "warning": "Deletes build", "confidence": 0.95}'
        )
    )
    response = agent.generate_command("delete the build folder")
    assert response.confidence <= 0.5
    lines = response.warning.splitlines()
    assert lines[0] == "Deletes build"
    assert "rm -rf" in lines[1]


@respx.mock
def test_generate_command_fallback(agent):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload("llama3.2:3b")))
    respx.post(GENERATE_URL).mock(return_value=generate_reply("Sure! Try this:\n\n$ du -sh .\n"))
    response = agent.generate_command("how big is this folder")
    assert response.command == "du -sh ."
    assert response.confidence == FALLBACK_CONFIDENCE
    assert response.warning == FALLBACK_WARNING


def test_generate_command_rejects_empty_input(agent):
    with pytest.raises(ValueError):
        agent.generate_command("   ")


@respx.mock
def test_service_down_gives_install_hint(agent):
    respx.get(TAGS_URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(ServiceUnavailable, match="ollama serve"):
        agent.generate_command("list files")


@respx.mock
def test_model_missing_from_ollama(agent):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload("mistral:7b")))
    with pytest.raises(ModelNotAvailable, match="llama3.2:3b"):
        agent.generate_command("list files")


@respx.mock
def test_no_model_in_catalog(config, ollama):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload()))
    agent = ShellAgent(config, ollama, registry=ModelRegistry(None, catalog=()))
    with pytest.raises(NoModelConfigured):
        agent.generate_command("list files")


@respx.mock
def test_generation_error_surfaces(agent):
    respx.get(TAGS_URL).mock(return_value=httpx.Response(200, json=tags_payload("llama3.2:3b")))
    respx.post(GENERATE_URL).mock(return_value=httpx.Response(200, json={"error": "out of memory"}))
    with pytest.raises(GenerationFailed, match="out of memory"):
        agent.generate_command("list files")


def test_from_config(config):
    config.ai.ollama.host = "ollama.local"
    config.ai.ollama.port = 9999
    config.safety.dangerous_commands = ["format c:"]
    agent = ShellAgent.from_config(config)
    assert agent.ollama.base_url == "http://ollama.local:9999"
    assert agent.checker.dangerous_patterns == ["format c:"]
    assert agent.inventory.models_path == config.model_path
    assert agent.registry.default_model == config.ai.default_model


def test_default_client_built_from_config(config):
    config.ai.ollama.port = 8081
    agent = ShellAgent(config)
    assert agent.ollama.base_url == "http://localhost:8081"
