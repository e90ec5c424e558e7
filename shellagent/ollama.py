"""HTTP client for the local Ollama service.

The shell agent never talks to a model directly; it delegates every
generation to an Ollama server (https://ollama.ai/) running on the
same machine.  This module wraps the small part of the Ollama HTTP API
the agent needs:

* ``GET /api/tags`` – used both as a reachability probe and to list the
  models the server currently has.
* ``POST /api/pull`` – downloads a model.  The server answers with a
  stream of newline-delimited JSON progress records which are decoded
  one by one and forwarded to a progress callback.
* ``POST /api/generate`` – single-shot, non-streaming generation.  The
  raw ``response`` text is returned untouched; turning it into a
  :class:`~shellagent.response.CommandResponse` is the job of
  :mod:`shellagent.response`.

Each call opens its own ``httpx.Client`` with its own timeout, so a
30 minute model download never shares a connection or a deadline with
an interactive generation request.  Failures are reported with the
:class:`ProviderError` hierarchy defined below.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx


logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5.0
LIST_TIMEOUT = 10.0
GENERATE_TIMEOUT = 120.0
PULL_TIMEOUT = 30 * 60.0

PROMPT_TEMPLATE = """Operating System: {os_name}

User Request: {user_input}

Please provide a shell command that accomplishes this request. Consider:
1. The operating system is {os_name}
2. Use safe, commonly available commands
3. Provide clear explanations
4. Warn about any potential risks
5. Suggest alternatives if helpful

Respond in JSON format as specified in the system prompt."""


class ProviderError(Exception):
    """Raised when the model service fails to serve a request."""


class ServiceUnavailable(ProviderError):
    """The Ollama server could not be reached."""


class ProtocolError(ProviderError):
    """The Ollama server answered with something we cannot decode."""


class PullFailed(ProviderError):
    """A model download was aborted by the server or ran out of time."""


class GenerationFailed(ProviderError):
    """A generate request returned an error."""


@dataclass(frozen=True)
class PullProgress:
    """One progress record of a streaming model pull."""

    status: str
    digest: str = ""
    completed: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PullProgress":
        try:
            return cls(
                status=str(data.get("status") or ""),
                digest=str(data.get("digest") or ""),
                completed=int(data.get("completed") or 0),
                total=int(data.get("total") or 0),
            )
        except (TypeError, ValueError) as exc:
            raise PullFailed(f"Malformed pull progress record: {data!r}") from exc


@dataclass
class RemoteModel:
    """A model as reported by ``GET /api/tags``."""

    name: str
    modified_at: str = ""
    size: int = 0
    digest: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def family(self) -> str:
        return str(self.details.get("family") or "")

    @property
    def parameter_size(self) -> str:
        return str(self.details.get("parameter_size") or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteModel":
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ProtocolError(f"Malformed model entry in tag listing: {data!r}")
        details = data.get("details")
        try:
            size = int(data.get("size") or 0)
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"Malformed size in tag listing: {data!r}") from exc
        return cls(
            name=data["name"],
            modified_at=str(data.get("modified_at") or ""),
            size=size,
            digest=str(data.get("digest") or ""),
            details=details if isinstance(details, dict) else {},
        )


@dataclass(frozen=True)
class GenerationRequest:
    """Everything sent to ``/api/generate`` for one user request."""

    model: str
    user_input: str
    os_name: str
    system: str = ""
    temperature: float = 0.1
    max_tokens: int = 2048

    @property
    def prompt(self) -> str:
        return PROMPT_TEMPLATE.format(os_name=self.os_name, user_input=self.user_input)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": self.prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        if self.system:
            payload["system"] = self.system
        return payload


ProgressCallback = Callable[[PullProgress], None]


class OllamaClient:
    """Client for the Ollama HTTP API.

    :param host: Host name of the Ollama server.
    :param port: Port of the Ollama server.
    :param timeout: Default timeout in seconds for generate requests.
    :param transport: Optional ``httpx`` transport, mainly for tests.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 11434,
        timeout: float = GENERATE_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = f"http://{host}:{port}"
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: httpx.Timeout | float) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport)

    def is_available(self, timeout: float = PROBE_TIMEOUT) -> None:
        """Probe the server; raise :class:`ServiceUnavailable` if it does not answer."""
        try:
            with self._client(timeout) as client:
                resp = client.get("/api/tags")
        except httpx.HTTPError as exc:
            raise ServiceUnavailable(
                f"Ollama service is not available at {self.base_url}: {exc}"
            ) from exc
        if resp.status_code != 200:
            raise ServiceUnavailable(f"Ollama service returned status {resp.status_code}")

    def list_models(self, timeout: float = LIST_TIMEOUT) -> List[RemoteModel]:
        """Return the models currently installed in Ollama."""
        try:
            with self._client(timeout) as client:
                resp = client.get("/api/tags")
        except httpx.HTTPError as exc:
            raise ServiceUnavailable(f"Failed to list models: {exc}") from exc
        if resp.status_code != 200:
            raise ProtocolError(f"Ollama API returned status {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProtocolError(f"Failed to decode model listing: {exc}") from exc
        models = data.get("models") if isinstance(data, dict) else None
        if models is None:
            return []
        if not isinstance(models, list):
            raise ProtocolError("Model listing is not a list")
        return [RemoteModel.from_dict(item) for item in models]

    def pull_model(
        self,
        model_name: str,
        on_progress: Optional[ProgressCallback] = None,
        timeout: float = PULL_TIMEOUT,
    ) -> None:
        """Download ``model_name`` into Ollama, reporting progress as it streams.

        The whole pull must complete within ``timeout`` seconds.  A record
        carrying an ``error`` field aborts the download immediately with
        :class:`PullFailed`; reaching the end of the stream is success.
        """
        deadline = time.monotonic() + timeout
        payload = {"name": model_name, "stream": True}
        try:
            with self._client(httpx.Timeout(timeout, connect=PROBE_TIMEOUT)) as client:
                with client.stream("POST", "/api/pull", json=payload) as resp:
                    if resp.status_code != 200:
                        resp.read()
                        raise PullFailed(
                            f"Ollama API returned status {resp.status_code}: {resp.text}"
                        )
                    for line in resp.iter_lines():
                        if not line.strip():
                            continue
                        try:
                            record = json.loads(line)
                        except ValueError as exc:
                            raise PullFailed(f"Failed to decode pull progress: {exc}") from exc
                        if not isinstance(record, dict):
                            raise PullFailed(f"Unexpected pull progress record: {record!r}")
                        if record.get("error"):
                            raise PullFailed(f"Ollama error: {record['error']}")
                        progress = PullProgress.from_dict(record)
                        logger.debug(
                            "pull %s: %s %d/%d (%.1f%%)",
                            model_name,
                            progress.status,
                            progress.completed,
                            progress.total,
                            progress.fraction * 100,
                        )
                        if on_progress is not None:
                            on_progress(progress)
                        if time.monotonic() > deadline:
                            raise PullFailed(
                                f"Pull of {model_name} did not finish within {timeout:.0f}s"
                            )
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise ServiceUnavailable(f"Failed to pull model: {exc}") from exc
        except httpx.HTTPError as exc:
            raise PullFailed(f"Pull of {model_name} interrupted: {exc}") from exc

    def generate(self, request: GenerationRequest, timeout: Optional[float] = None) -> str:
        """Send one generate request and return the raw ``response`` text."""
        timeout = self.timeout if timeout is None else timeout
        logger.info("Sending request to Ollama (model=%s): %.100s", request.model, request.prompt)
        try:
            with self._client(httpx.Timeout(timeout, connect=PROBE_TIMEOUT)) as client:
                resp = client.post("/api/generate", json=request.to_payload())
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise ServiceUnavailable(f"Failed to send request to Ollama: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise GenerationFailed(f"Generation timed out after {timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            raise GenerationFailed(f"Generate request failed: {exc}") from exc

        if resp.status_code != 200:
            raise GenerationFailed(f"Ollama API returned status {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationFailed(f"Failed to decode response: {exc}") from exc
        if not isinstance(data, dict):
            raise GenerationFailed("Unexpected generate response")
        if data.get("error"):
            raise GenerationFailed(f"Ollama error: {data['error']}")

        text = data.get("response") or ""
        logger.info(
            "Received response from Ollama (model=%s, length=%d, total_duration=%s, "
            "prompt_eval_count=%s, eval_count=%s)",
            data.get("model", request.model),
            len(text),
            data.get("total_duration"),
            data.get("prompt_eval_count"),
            data.get("eval_count"),
        )
        return text


def get_provider(provider_name: str, host: str = "localhost", port: int = 11434,
                 timeout: float = GENERATE_TIMEOUT) -> OllamaClient:
    """Factory function to instantiate the client for a configured provider.

    :param provider_name: Name of the provider; only ``ollama`` is served.
    :raises ValueError: If the provider name is unknown.
    """
    name = provider_name.lower().strip()
    if name == "ollama":
        return OllamaClient(host, port, timeout)
    raise ValueError(f"Unknown provider: {provider_name}")
