"""Safety classification of generated commands.

The agent never refuses to show a command, but it must make risk
visible before the user runs anything.  :class:`SafetyChecker` runs a
fixed, ordered list of rules over a :class:`CommandResponse`; each rule
that fires appends a warning (warnings are never replaced) and may
lower the confidence.  Rules run in order and independently, so one
command can collect several warnings:

1. a configurable list of dangerous substrings (``rm -rf``, ``mkfs``,
   fork bombs, ...).  Only the first match is reported and confidence
   is capped at 0.5;
2. privilege escalation through ``sudo``;
3. recursive operations (``-r`` together with ``rm``, ``chmod`` or
   ``chown``).

Matching is plain case-insensitive substring search, not shell parsing.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from .response import CommandResponse


logger = logging.getLogger(__name__)

DANGER_CONFIDENCE_CAP = 0.5
PRIVILEGE_WARNING = "⚠️ This command requires administrative privileges"
RECURSIVE_WARNING = "⚠️ This command will operate recursively on directories"

DEFAULT_DANGEROUS_COMMANDS = (
    "rm -rf",
    "sudo rm",
    "mkfs",
    "dd if=",
    "> /dev/sda",
    ":(){ :|:& };:",
    "chmod -R 777 /",
    "shutdown",
    "reboot",
    "halt",
)

RECURSIVE_VERBS = ("rm", "chmod", "chown")

Rule = Tuple[Callable[[CommandResponse, str], Optional[str]], Callable[[CommandResponse, str], None]]


def danger_warning(pattern: str) -> str:
    return f"⚠️ DANGER: This command contains '{pattern}' which can be destructive"


class SafetyChecker:
    """Apply the safety rules to command responses.

    :param dangerous_patterns: Substrings that mark a command as
      destructive.  Defaults to :data:`DEFAULT_DANGEROUS_COMMANDS`.
    """

    def __init__(self, dangerous_patterns: Optional[Iterable[str]] = None) -> None:
        if dangerous_patterns is None:
            dangerous_patterns = DEFAULT_DANGEROUS_COMMANDS
        self.dangerous_patterns: List[str] = [p for p in dangerous_patterns if p]
        self.rules: Tuple[Rule, ...] = (
            (self._match_dangerous, self._flag_dangerous),
            (self._match_privileged, self._flag_privileged),
            (self._match_recursive, self._flag_recursive),
        )

    def check(self, response: CommandResponse) -> CommandResponse:
        """Classify ``response`` in place and return it."""
        if not response.command:
            return response
        for predicate, effect in self.rules:
            hit = predicate(response, response.command.lower())
            if hit is not None:
                effect(response, hit)
        return response

    def is_dangerous(self, command: str) -> bool:
        """Return True if ``command`` matches one of the dangerous patterns."""
        return self.first_dangerous_pattern(command) is not None

    def first_dangerous_pattern(self, command: str) -> Optional[str]:
        lowered = command.lower()
        for pattern in self.dangerous_patterns:
            if pattern.lower() in lowered:
                return pattern
        return None

    def _match_dangerous(self, response: CommandResponse, lowered: str) -> Optional[str]:
        return self.first_dangerous_pattern(lowered)

    def _flag_dangerous(self, response: CommandResponse, pattern: str) -> None:
        response.add_warning(danger_warning(pattern))
        response.cap_confidence(DANGER_CONFIDENCE_CAP)
        logger.warning("Dangerous command pattern %r detected in %r", pattern, response.command)

    @staticmethod
    def _match_privileged(response: CommandResponse, lowered: str) -> Optional[str]:
        if "sudo" in lowered and "sudo" not in response.warning:
            return "sudo"
        return None

    @staticmethod
    def _flag_privileged(response: CommandResponse, marker: str) -> None:
        response.add_warning(PRIVILEGE_WARNING)

    @staticmethod
    def _match_recursive(response: CommandResponse, lowered: str) -> Optional[str]:
        if "-r" not in lowered:
            return None
        for verb in RECURSIVE_VERBS:
            if verb in lowered:
                return verb
        return None

    @staticmethod
    def _flag_recursive(response: CommandResponse, verb: str) -> None:
        response.add_warning(RECURSIVE_WARNING)
