"""Local feedback log.

After a generated command has been run, the user can tell the agent
whether it ``worked``, ``failed`` or was ``incorrect`` (optionally with
the command that should have been generated).  Entries are kept in a
JSON list at ``~/.shell-agent/feedback.json``; nothing is sent anywhere.

Appends read the whole file and write it back, so :class:`FeedbackLog`
serialises every read and write through a lock held for the duration
of the operation.
"""

from __future__ import annotations

import datetime as _datetime
import json
import threading
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


VALID_STATUSES = ("worked", "failed", "incorrect")


def default_feedback_path() -> Path:
    return Path.home() / ".shell-agent" / "feedback.json"


@dataclass
class FeedbackEntry:
    status: str
    user_prompt: str = ""
    generated_command: str = ""
    correct_command: str = ""
    reason: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: _datetime.datetime.now(_datetime.timezone.utc).isoformat()
    )

    def __post_init__(self) -> None:
        if self.status not in VALID_STATUSES:
            raise ValueError(
                f"Invalid status {self.status!r}. Please use 'worked', 'failed', or 'incorrect'."
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedbackEntry":
        names = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in names})


class FeedbackLog:
    """Append-only JSON file of :class:`FeedbackEntry` records."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_feedback_path()
        self._lock = threading.Lock()

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError(f"Feedback file {self.path} does not contain a list")
        return data

    def load(self) -> List[FeedbackEntry]:
        """Return all entries in the order they were recorded."""
        with self._lock:
            return [FeedbackEntry.from_dict(item) for item in self._read()]

    def append(self, entry: FeedbackEntry) -> None:
        """Add ``entry`` to the log, creating the file if needed.

        A corrupt file is not overwritten; the decode error propagates.
        """
        with self._lock:
            data = self._read()
            data.append(asdict(entry))
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
