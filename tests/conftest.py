import logging

import pytest

from shellagent.config import Config
from shellagent.inventory import Inventory
from shellagent.log import LOGGER_NAME
from shellagent.ollama import OllamaClient

BASE_URL = "http://localhost:11434"
TAGS_URL = f"{BASE_URL}/api/tags"
PULL_URL = f"{BASE_URL}/api/pull"
GENERATE_URL = f"{BASE_URL}/api/generate"


def tags_payload(*names):
    return {
        "models": [
            {
                "name": name,
                "modified_at": "2024-09-25T10:00:00Z",
                "size": 2019393189,
                "digest": "a80c4f17acd5",
                "details": {
                    "format": "gguf",
                    "family": "llama",
                    "families": ["llama"],
                    "parameter_size": "3.2B",
                    "quantization_level": "Q4_K_M",
                },
            }
            for name in names
        ]
    }


@pytest.fixture
def ollama():
    return OllamaClient("localhost", 11434, timeout=30)


@pytest.fixture
def models_path(tmp_path):
    return tmp_path / "models"


@pytest.fixture
def inventory(ollama, models_path):
    return Inventory(ollama, models_path)


@pytest.fixture
def config(models_path):
    cfg = Config()
    cfg.ai.model_path = str(models_path)
    return cfg


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
