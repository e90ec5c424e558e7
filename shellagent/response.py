"""Command responses and interpretation of raw model output.

The model is asked to answer with a JSON object, but nothing forces it
to.  :func:`interpret` therefore has two paths:

* the *structured* path decodes the JSON object embedded in the reply
  (the span between the first ``{`` and the last ``}``);
* the *fallback* path scans the reply line by line for something that
  looks like a command (a ``$`` prompt, a backtick-quoted snippet or a
  single bare word).

Which path produced a response is reported alongside it so callers can
log degraded parses.  Interpretation never raises.
"""

from __future__ import annotations

import enum
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional


DEFAULT_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.3
FALLBACK_EXPLANATION = (
    "AI response was not in expected format, extracted command using fallback method"
)
FALLBACK_WARNING = "Please verify this command before executing"
UNPARSED_COMMAND = "echo 'Could not parse command from AI response'"


@dataclass
class CommandResponse:
    """A generated command and what the agent knows about it.

    ``warning`` only ever grows: use :meth:`add_warning` rather than
    assigning to it.  An empty ``command`` means the model declined.
    """

    command: str = ""
    explanation: str = ""
    warning: str = ""
    confidence: float = 0.0
    alternatives: List[str] = field(default_factory=list)

    def add_warning(self, text: str) -> None:
        if not text:
            return
        self.warning = f"{self.warning}\n{text}" if self.warning else text

    def cap_confidence(self, limit: float) -> None:
        """Lower confidence to ``limit`` if it is higher; never raise it."""
        if self.confidence > limit:
            self.confidence = limit

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ParsePath(enum.Enum):
    STRUCTURED = "structured"
    FALLBACK = "fallback"


class Interpretation(NamedTuple):
    path: ParsePath
    response: CommandResponse

    @property
    def degraded(self) -> bool:
        return self.path is ParsePath.FALLBACK


def _structured(text: str) -> Optional[CommandResponse]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    result = CommandResponse(confidence=DEFAULT_CONFIDENCE)
    if isinstance(data.get("command"), str):
        result.command = data["command"].strip()
    if isinstance(data.get("explanation"), str):
        result.explanation = data["explanation"]
    if isinstance(data.get("warning"), str):
        result.warning = data["warning"]
    confidence = data.get("confidence")
    # bool is an int subclass; true/false is not a score
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        result.confidence = min(max(float(confidence), 0.0), 1.0)
    alternatives = data.get("alternatives")
    if isinstance(alternatives, list):
        result.alternatives = [alt for alt in alternatives if isinstance(alt, str)]

    if not result.command and not result.warning:
        return None
    return result


def _extract_command(line: str) -> Optional[str]:
    if "$" in line:
        idx = line.index("$")
        if idx < len(line) - 1:
            command = line[idx + 1:].strip()
            return command or None
        return None
    if "`" in line:
        start = line.index("`")
        end = line.rindex("`")
        if start != end:
            return line[start + 1:end] or None
        return None
    if " " not in line and "\t" not in line:
        return line
    return None


def _fallback(text: str) -> CommandResponse:
    command = ""
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        candidate = _extract_command(line)
        if candidate:
            command = candidate
            break
    return CommandResponse(
        command=command or UNPARSED_COMMAND,
        explanation=FALLBACK_EXPLANATION,
        warning=FALLBACK_WARNING,
        confidence=FALLBACK_CONFIDENCE,
    )


def interpret(raw: str) -> Interpretation:
    """Turn the raw text of a generate reply into a :class:`CommandResponse`."""
    text = (raw or "").strip()
    structured = _structured(text)
    if structured is not None:
        return Interpretation(ParsePath.STRUCTURED, structured)
    return Interpretation(ParsePath.FALLBACK, _fallback(text))


def parse_response(raw: str) -> CommandResponse:
    return interpret(raw).response
