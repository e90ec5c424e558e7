"""Reconciliation of local model markers with the Ollama inventory.

A model counts as *downloaded* only when two independent sources agree:

* a local marker file, ``<model_path>/<name>/metadata.json``, written
  by :meth:`Inventory.download` after a pull completed; and
* the Ollama server, which must currently list a matching model.

Requiring both avoids reporting a model as ready after it was deleted
from Ollama behind our back, or after a crash in the middle of a
download left a half-written state on one side.

Read-only questions (:meth:`Inventory.is_downloaded` and friends) never
raise: an unreachable server or an unreadable marker simply means "not
downloaded".  Writing new state (:meth:`Inventory.write_marker`) does
propagate errors.
"""

from __future__ import annotations

import datetime as _datetime
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence

from .ollama import (
    LIST_TIMEOUT,
    PROBE_TIMEOUT,
    PULL_TIMEOUT,
    OllamaClient,
    ProgressCallback,
    ProviderError,
    RemoteModel,
)

if TYPE_CHECKING:
    from .models import ModelDescriptor


logger = logging.getLogger(__name__)

MARKER_FILENAME = "metadata.json"


class ModelAlreadyPresent(ProviderError):
    """Raised when asked to download a model Ollama already has."""


def matches_remote(name: str, remote_name: str) -> bool:
    """Return True if ``remote_name`` stands for the model ``name``.

    Either the names are equal, or the part of ``name`` before the first
    ``:`` occurs in the remote name (``llama3.2`` matches ``llama3.2:3b``).
    """
    if name == remote_name:
        return True
    base = name.split(":", 1)[0]
    return bool(base) and base in remote_name


def select_recommended(descriptors: Sequence["ModelDescriptor"]) -> Optional["ModelDescriptor"]:
    """Pick the model to suggest when the user has not chosen one.

    Preference: recommended and downloaded, then recommended, then the
    first catalog entry.
    """
    for model in descriptors:
        if model.recommended and model.downloaded:
            return model
    for model in descriptors:
        if model.recommended:
            return model
    return descriptors[0] if descriptors else None


class Inventory:
    """Decides whether models are ready to use, and installs them.

    :param client: Client for the Ollama server.
    :param models_path: Root directory for the local marker files.
    """

    def __init__(self, client: OllamaClient, models_path: Path,
                 probe_timeout: float = PROBE_TIMEOUT) -> None:
        self.client = client
        self.models_path = Path(models_path)
        self.probe_timeout = probe_timeout

    def marker_path(self, name: str) -> Path:
        return self.models_path / name / MARKER_FILENAME

    def has_marker(self, name: str) -> bool:
        try:
            return self.marker_path(name).is_file()
        except OSError as exc:
            logger.debug("Cannot check marker for %s: %s", name, exc)
            return False

    def remote_models(self) -> List[RemoteModel]:
        """List models known to Ollama; errors propagate."""
        self.client.is_available(self.probe_timeout)
        return self.client.list_models(LIST_TIMEOUT)

    def is_available_remotely(self, name: str) -> bool:
        try:
            models = self.client.list_models(self.probe_timeout)
        except ProviderError as exc:
            logger.debug("Failed to list Ollama models: %s", exc)
            return False
        return any(matches_remote(name, model.name) for model in models)

    def is_downloaded(self, name: str) -> bool:
        """True only if the local marker exists and Ollama has the model."""
        if not self.has_marker(name):
            return False
        return self.is_available_remotely(name)

    def write_marker(self, model: "ModelDescriptor") -> Path:
        path = self.marker_path(model.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        metadata = {
            "name": model.name,
            "ollama_name": model.ollama_name,
            "description": model.description,
            "size": model.size,
            "type": model.type,
            "recommended": model.recommended,
            "downloaded_at": _datetime.datetime.now(_datetime.timezone.utc).isoformat(),
            "source": "ollama",
        }
        with path.open("w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=4)
        return path

    def download(
        self,
        model: "ModelDescriptor",
        on_progress: Optional[ProgressCallback] = None,
        timeout: float = PULL_TIMEOUT,
    ) -> Path:
        """Pull ``model`` into Ollama and record it locally.

        The marker is only written once the pull finished without error,
        so an aborted download never shows up as downloaded.

        :returns: Path of the marker file.
        :raises ModelAlreadyPresent: If Ollama already lists the model.  The
          missing marker is written first so the model becomes usable.
        """
        logger.info("Starting model download via Ollama: %s", model.name)
        self.client.is_available(LIST_TIMEOUT)
        if self.is_available_remotely(model.ollama_name):
            if not self.has_marker(model.name):
                self.write_marker(model)
            raise ModelAlreadyPresent(f"Model {model.name} is already downloaded in Ollama")
        self.client.pull_model(model.ollama_name, on_progress=on_progress, timeout=timeout)
        marker = self.write_marker(model)
        logger.info("Model download completed: %s (%s, %s)", model.name, model.ollama_name, model.size)
        return marker
