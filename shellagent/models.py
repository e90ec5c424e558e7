"""Catalog of supported models and selection of the current one.

The catalog is a fixed, ordered list of models known to work well for
shell command generation.  Descriptors are rebuilt on every call to
:meth:`ModelRegistry.list` so their ``downloaded`` flag always reflects
the live state of the local markers and the Ollama server; nothing is
cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .inventory import Inventory, select_recommended


@dataclass
class ModelDescriptor:
    name: str
    description: str
    size: str
    type: str
    recommended: bool = False
    ollama_name: str = ""
    downloaded: bool = False

    def __post_init__(self) -> None:
        if not self.ollama_name:
            self.ollama_name = self.name

    def matches(self, name: str) -> bool:
        return name in (self.name, self.ollama_name)


CATALOG = (
    ModelDescriptor(
        name="llama3.2:3b",
        description="Llama 3.2 3B - Fast and efficient for command generation",
        size="2.0GB",
        type="Language Model",
        recommended=True,
    ),
    ModelDescriptor(
        name="llama3.2:1b",
        description="Llama 3.2 1B - Ultra-fast and lightweight",
        size="1.3GB",
        type="Language Model",
        recommended=True,
    ),
    ModelDescriptor(
        name="codegemma:7b",
        description="CodeGemma 7B - Specialized for code and shell commands",
        size="5.0GB",
        type="Code Model",
        recommended=True,
    ),
    ModelDescriptor(
        name="llama3.1:8b",
        description="Llama 3.1 8B - Balanced performance and accuracy",
        size="4.7GB",
        type="Language Model",
    ),
    ModelDescriptor(
        name="mistral:7b",
        description="Mistral 7B - Good general purpose model",
        size="4.1GB",
        type="Language Model",
    ),
    ModelDescriptor(
        name="phi3:mini",
        description="Phi-3 Mini - Microsoft's compact model",
        size="2.3GB",
        type="Small Model",
    ),
)


def select_current(descriptors: Sequence[ModelDescriptor], default_model: str) -> Optional[ModelDescriptor]:
    """Choose the model to use.

    Precedence: the configured default (by name or Ollama name), the
    first downloaded model, the first recommended model, the first
    model.  ``None`` only for an empty catalog.
    """
    for model in descriptors:
        if model.matches(default_model):
            return model
    for model in descriptors:
        if model.downloaded:
            return model
    for model in descriptors:
        if model.recommended:
            return model
    return descriptors[0] if descriptors else None


class ModelRegistry:
    """Live view of the catalog.

    :param inventory: Source of the ``downloaded`` flag.
    :param default_model: Model name configured by the user.
    :param catalog: Models offered, in display order.
    """

    def __init__(self, inventory: Inventory, default_model: str = "",
                 catalog: Sequence[ModelDescriptor] = CATALOG) -> None:
        self.inventory = inventory
        self.default_model = default_model
        self.catalog = tuple(catalog)

    def list(self) -> List[ModelDescriptor]:
        return [
            replace(model, downloaded=self.inventory.is_downloaded(model.name))
            for model in self.catalog
        ]

    def current(self) -> Optional[ModelDescriptor]:
        return select_current(self.list(), self.default_model)

    def recommended(self) -> Optional[ModelDescriptor]:
        return select_recommended(self.list())

    def find(self, name: str) -> Optional[ModelDescriptor]:
        for model in self.list():
            if model.matches(name):
                return model
        return None
