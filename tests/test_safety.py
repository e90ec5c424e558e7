import pytest

from shellagent.response import CommandResponse
from shellagent.safety import (
    DEFAULT_DANGEROUS_COMMANDS,
    PRIVILEGE_WARNING,
    RECURSIVE_WARNING,
    SafetyChecker,
    danger_warning,
)


@pytest.fixture
def checker():
    return SafetyChecker()


@pytest.mark.parametrize("command", ["ls -la", "du -sh .", "git status", "find . -name '*.py'"])
def test_clean_command_unchanged(checker, command):
    response = CommandResponse(command=command, warning="keep me", confidence=0.9)
    checker.check(response)
    assert response.warning == "keep me"
    assert response.confidence == 0.9


def test_empty_command_is_noop(checker):
    response = CommandResponse(command="", warning="", confidence=0.0)
    checker.check(response)
    assert response.warning == ""


def test_dangerous_pattern_caps_confidence(checker):
    response = CommandResponse(command="rm -rf build", confidence=0.95)
    checker.check(response)
    assert response.confidence <= 0.5
    assert "rm -rf" in response.warning
    assert response.warning.splitlines()[0] == danger_warning("rm -rf")


def test_dangerous_pattern_is_case_insensitive():
    checker = SafetyChecker(["MKFS"])
    response = CommandResponse(command="sudo mkfs.ext4 /dev/sdb1", confidence=0.3)
    checker.check(response)
    assert "MKFS" in response.warning
    assert response.confidence == 0.3


def test_only_first_dangerous_pattern_reported(checker):
    response = CommandResponse(command="rm -rf / && shutdown now", confidence=0.9)
    checker.check(response)
    assert "rm -rf" in response.warning
    assert "shutdown" not in response.warning


def test_privilege_warning(checker):
    response = CommandResponse(command="sudo apt-get update", confidence=0.9)
    checker.check(response)
    assert response.warning == PRIVILEGE_WARNING
    assert response.confidence == 0.9


def test_privilege_warning_not_repeated(checker):
    response = CommandResponse(command="sudo apt-get update", warning="uses sudo")
    checker.check(response)
    assert response.warning == "uses sudo"


def test_recursive_warning(checker):
    response = CommandResponse(command="chmod -R 755 site", confidence=0.9)
    checker.check(response)
    assert response.warning == RECURSIVE_WARNING


def test_warnings_append_in_rule_order():
    checker = SafetyChecker(["rm -r"])
    response = CommandResponse(command="sudo rm -r /var/tmp/cache", warning="from model", confidence=0.8)
    checker.check(response)
    assert response.warning.splitlines() == [
        "from model",
        danger_warning("rm -r"),
        PRIVILEGE_WARNING,
        RECURSIVE_WARNING,
    ]
    assert response.confidence == 0.5


def test_default_patterns(checker):
    assert checker.dangerous_patterns == list(DEFAULT_DANGEROUS_COMMANDS)
    assert checker.is_dangerous("dd if=/dev/zero of=/dev/sda")
    assert not checker.is_dangerous("echo hello")
