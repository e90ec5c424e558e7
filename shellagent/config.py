"""Configuration loading for the shell agent.

Configuration lives in a single YAML file, ``~/.shell-agent.yaml`` by
default.  The location can be overridden with the ``--config`` CLI
option or the ``SHELL_AGENT_CONFIG`` environment variable.  Values
found in the file are merged over the built-in defaults so a partial
file is always valid; a missing or malformed file simply yields the
defaults.

The loaded configuration is exposed as a small tree of dataclasses
(:class:`Config`) so callers get attribute access and sensible types
instead of nested dictionaries.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .safety import DEFAULT_DANGEROUS_COMMANDS


CONFIG_ENV_VAR = "SHELL_AGENT_CONFIG"

DEFAULT_SYSTEM_PROMPT = (
    "You are a shell command assistant. Translate the user's request into a "
    "single shell command for their operating system. Respond ONLY with a JSON "
    "object of the form "
    '{"command": "...", "explanation": "...", "warning": "...", '
    '"confidence": 0.0, "alternatives": ["..."]}. '
    "Use an empty command if the request cannot be turned into a command. "
    "Mention any risk in the warning field. Confidence is a number between 0 and 1."
)


@dataclass
class OllamaSettings:
    host: str = "localhost"
    port: int = 11434


@dataclass
class AISettings:
    provider: str = "ollama"
    default_model: str = "llama3.2:3b"
    model_path: str = "~/.shell-agent/models"
    timeout: int = 120
    max_tokens: int = 2048
    temperature: float = 0.1
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    ollama: OllamaSettings = field(default_factory=OllamaSettings)


@dataclass
class InteractiveSettings:
    confirm_commands: bool = True
    show_explanation: bool = True
    show_confidence: bool = True


@dataclass
class SafetySettings:
    require_confirm: bool = True
    dangerous_commands: List[str] = field(
        default_factory=lambda: list(DEFAULT_DANGEROUS_COMMANDS)
    )


@dataclass
class LoggingSettings:
    level: str = "warning"
    file: str = ""


@dataclass
class Config:
    """Typed view over the YAML configuration file."""

    ai: AISettings = field(default_factory=AISettings)
    interactive: InteractiveSettings = field(default_factory=InteractiveSettings)
    safety: SafetySettings = field(default_factory=SafetySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def model_path(self) -> Path:
        """Model storage root with ``~`` expanded."""
        return Path(os.path.expanduser(self.ai.model_path))

    @property
    def ollama_url(self) -> str:
        return f"http://{self.ai.ollama.host}:{self.ai.ollama.port}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a config from a (possibly partial) mapping.

        Unknown keys are ignored and values of the wrong shape fall back
        to the defaults of the section they belong to.
        """
        data = data if isinstance(data, dict) else {}
        ai_data = _section(data, "ai")
        ollama = OllamaSettings(**_known(OllamaSettings, _section(ai_data, "ollama")))
        ai_values = _known(AISettings, ai_data)
        ai_values.pop("ollama", None)
        return cls(
            ai=AISettings(ollama=ollama, **ai_values),
            interactive=InteractiveSettings(
                **_known(InteractiveSettings, _section(data, "interactive"))
            ),
            safety=SafetySettings(**_known(SafetySettings, _section(data, "safety"))),
            logging=LoggingSettings(**_known(LoggingSettings, _section(data, "logging"))),
        )


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _known(section_cls: type, values: Dict[str, Any]) -> Dict[str, Any]:
    defaults = section_cls()
    known = {}
    for f in fields(section_cls):
        if f.name not in values:
            continue
        value = _checked(getattr(defaults, f.name), values[f.name])
        if value is not None:
            known[f.name] = value
    return known


def _checked(default: Any, value: Any) -> Any:
    """Return ``value`` if it fits the type of ``default``, else ``None``.

    Ints are accepted for numeric fields and a lone string is accepted
    as a one-item list.
    """
    if value is None:
        return None
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value
    if isinstance(default, str):
        return value if isinstance(value, str) else None
    if isinstance(default, list):
        if isinstance(value, str):
            return [value]
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        return None
    return value


def config_file(path: Optional[str] = None) -> Path:
    """Return the path of the configuration file.

    Precedence: explicit ``path`` argument, then the
    ``SHELL_AGENT_CONFIG`` environment variable, then
    ``~/.shell-agent.yaml``.
    """
    if path:
        return Path(os.path.expanduser(path))
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(os.path.expanduser(env_path))
    return Path.home() / ".shell-agent.yaml"


def load_config(path: Optional[str] = None) -> Config:
    """Load YAML configuration, returning defaults if missing or malformed."""
    cfg_path = config_file(path)
    if cfg_path.exists():
        try:
            with cfg_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if isinstance(data, dict):
                    return Config.from_dict(data)
        except (OSError, yaml.YAMLError):
            pass
    return Config()


def save_config(config: Config, path: Optional[str] = None) -> Path:
    """Persist configuration to disk and return the file written."""
    cfg_path = config_file(path)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    return cfg_path


def write_default_config(path: Optional[str] = None) -> Optional[Path]:
    """Create the configuration file with defaults unless it already exists.

    :returns: The path written, or ``None`` when a file was already there.
    """
    cfg_path = config_file(path)
    if cfg_path.exists():
        return None
    return save_config(Config(), path)
