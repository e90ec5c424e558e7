import yaml

from shellagent.config import (
    CONFIG_ENV_VAR,
    Config,
    config_file,
    load_config,
    save_config,
    write_default_config,
)
from shellagent.response import CommandResponse
from shellagent.safety import DEFAULT_DANGEROUS_COMMANDS, SafetyChecker


def test_defaults_when_missing(tmp_path):
    cfg = load_config(str(tmp_path / "missing.yaml"))
    assert cfg.ai.default_model == "llama3.2:3b"
    assert cfg.ai.timeout > 0
    assert cfg.ai.ollama.port == 11434
    assert cfg.safety.dangerous_commands == list(DEFAULT_DANGEROUS_COMMANDS)
    assert cfg.interactive.confirm_commands is True


def test_partial_file_merges_over_defaults(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "ai:\n"
        "  default_model: mistral:7b\n"
        "  timeout: 30\n"
        "  ollama:\n"
        "    port: 12345\n"
        "  unknown_key: 1\n"
        "safety:\n"
        "  dangerous_commands: ['rm -rf']\n"
    )
    cfg = load_config(str(path))
    assert cfg.ai.default_model == "mistral:7b"
    assert cfg.ai.timeout == 30
    assert cfg.ai.ollama.port == 12345
    assert cfg.ai.ollama.host == "localhost"
    assert cfg.ai.temperature == 0.1
    assert cfg.safety.dangerous_commands == ["rm -rf"]
    assert cfg.ollama_url == "http://localhost:12345"


def test_malformed_file_gives_defaults(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("ai: [unclosed\n")
    assert load_config(str(path)) == Config()


def test_non_mapping_sections_ignored():
    cfg = Config.from_dict({"ai": "nope", "logging": {"level": "debug"}})
    assert cfg.ai.default_model == "llama3.2:3b"
    assert cfg.logging.level == "debug"


def test_save_and_reload(tmp_path):
    path = str(tmp_path / "nested" / "cfg.yaml")
    cfg = Config()
    cfg.ai.default_model = "phi3:mini"
    save_config(cfg, path)
    with open(path, encoding="utf-8") as f:
        assert yaml.safe_load(f)["ai"]["default_model"] == "phi3:mini"
    assert load_config(path) == cfg


def test_env_var_location(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert config_file() == path
    assert config_file(str(tmp_path / "explicit.yaml")) == tmp_path / "explicit.yaml"


def test_write_default_config_only_once(tmp_path):
    path = str(tmp_path / "cfg.yaml")
    assert write_default_config(path) is not None
    assert write_default_config(path) is None


def test_model_path_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    cfg = Config()
    assert cfg.model_path == tmp_path / ".shell-agent" / "models"


def test_wrong_typed_values_fall_back_to_defaults():
    cfg = Config.from_dict({
        "ai": {"timeout": "two minutes", "temperature": True, "ollama": {"port": "eleven"}},
        "interactive": {"confirm_commands": "no"},
        "safety": {"dangerous_commands": ["rm -rf", 3]},
    })
    assert cfg.ai.timeout == 120
    assert cfg.ai.temperature == 0.1
    assert cfg.ai.ollama.port == 11434
    assert cfg.interactive.confirm_commands is True
    assert cfg.safety.dangerous_commands == list(DEFAULT_DANGEROUS_COMMANDS)


def test_numeric_fields_accept_ints_and_floats():
    cfg = Config.from_dict({"ai": {"timeout": 30.5, "temperature": 1}})
    assert cfg.ai.timeout == 30.5
    assert cfg.ai.temperature == 1


def test_single_dangerous_command_string_becomes_list():
    cfg = Config.from_dict({"safety": {"dangerous_commands": "rm -rf"}})
    assert cfg.safety.dangerous_commands == ["rm -rf"]
    checker = SafetyChecker(cfg.safety.dangerous_commands)
    response = CommandResponse(command="ls -la", confidence=0.9)
    checker.check(response)
    assert response.warning == ""
    assert response.confidence == 0.9
