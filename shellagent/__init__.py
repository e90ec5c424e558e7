"""Top-level package for the shell agent.

This package implements ``shell-agent``, a command line tool that turns
natural language requests into shell commands using a model served by a
local Ollama instance.  The generation pipeline lives in ``client.py``;
helper modules handle the Ollama HTTP API, the model catalog and local
inventory, interpretation of model output, safety classification,
configuration and the local feedback log.

When this package is installed via pip you can invoke the CLI from
your shell using the ``shell-agent`` entry point.  Alternatively you
can run ``python -m shellagent.cli`` for local development.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "client",
    "config",
    "feedback",
    "inventory",
    "models",
    "ollama",
    "response",
    "safety",
    "server",
]
