"""Command generation pipeline.

:class:`ShellAgent` ties the pieces together for one user request:

1. probe the Ollama server;
2. pick the current model from the registry and make sure Ollama has it;
3. send the request, with the operating system and the configured
   system prompt, to ``/api/generate``;
4. interpret the raw reply (structured JSON first, heuristics second);
5. run the safety rules over the result.

Every step re-derives its state; the agent holds no connection and
caches no model list between calls.
"""

from __future__ import annotations

import logging
import platform
from typing import Optional

from .config import Config
from .inventory import Inventory
from .models import ModelRegistry
from .ollama import (
    PROBE_TIMEOUT,
    GenerationRequest,
    OllamaClient,
    ProviderError,
    ServiceUnavailable,
    get_provider,
)
from .response import CommandResponse, interpret
from .safety import SafetyChecker


logger = logging.getLogger(__name__)

INSTALL_HINT = (
    "Please ensure Ollama is installed and running:\n"
    "- Install: https://ollama.ai/download\n"
    "- Start: 'ollama serve'"
)


class NoModelConfigured(ProviderError):
    """No model could be selected from the catalog."""


class ModelNotAvailable(ProviderError):
    """The selected model is not installed in Ollama."""


def os_name() -> str:
    """Short operating system tag (``linux``, ``darwin``, ``windows``)."""
    return platform.system().lower() or "unknown"


class ShellAgent:
    """Generate shell commands from natural language."""

    def __init__(
        self,
        config: Config,
        ollama: Optional[OllamaClient] = None,
        inventory: Optional[Inventory] = None,
        registry: Optional[ModelRegistry] = None,
        checker: Optional[SafetyChecker] = None,
    ) -> None:
        self.config = config
        if ollama is None:
            ollama = get_provider(
                config.ai.provider,
                config.ai.ollama.host,
                config.ai.ollama.port,
                float(config.ai.timeout),
            )
        self.ollama = ollama
        self.inventory = inventory or Inventory(ollama, config.model_path)
        self.registry = registry or ModelRegistry(self.inventory, config.ai.default_model)
        self.checker = checker or SafetyChecker(config.safety.dangerous_commands)

    @classmethod
    def from_config(cls, config: Config) -> "ShellAgent":
        return cls(config)

    def build_request(self, model_name: str, text: str) -> GenerationRequest:
        return GenerationRequest(
            model=model_name,
            user_input=text,
            os_name=os_name(),
            system=self.config.ai.system_prompt,
            temperature=self.config.ai.temperature,
            max_tokens=self.config.ai.max_tokens,
        )

    def generate_command(self, text: str) -> CommandResponse:
        """Turn ``text`` into a classified :class:`CommandResponse`.

        :raises ValueError: For empty input.
        :raises ProviderError: When the service or the model is not
          usable, or the generate call fails.
        """
        text = text.strip()
        if not text:
            raise ValueError("Empty prompt provided")
        logger.info("Generating command for: %s", text)

        try:
            self.ollama.is_available(PROBE_TIMEOUT)
        except ServiceUnavailable as exc:
            raise ServiceUnavailable(f"{exc}\n\n{INSTALL_HINT}") from exc

        model = self.registry.current()
        if model is None:
            raise NoModelConfigured(
                "No AI model configured. Please run 'shell-agent download' first"
            )
        if not self.inventory.is_available_remotely(model.ollama_name):
            raise ModelNotAvailable(
                f"Model '{model.name}' is not available in Ollama. "
                "Please run 'shell-agent download' to install it"
            )

        request = self.build_request(model.ollama_name, text)
        raw = self.ollama.generate(request, timeout=float(self.config.ai.timeout))

        outcome = interpret(raw)
        if outcome.degraded:
            logger.warning("Model reply was not valid JSON, used fallback parser")
        response = self.checker.check(outcome.response)

        logger.info(
            "Generated command %r (confidence=%.2f, model=%s)",
            response.command,
            response.confidence,
            model.name,
        )
        return response
