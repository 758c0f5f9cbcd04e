"""Narrator-visible action log.

Entries carry a monotonic sequence number; checkpoints store the sequence
they were taken at so the session timeline can map any log position back to
the nearest preceding snapshot.
"""

from collections import deque
from typing import Any, Callable, Optional

import yaml
from pydantic import BaseModel, Field

from narrator.clock import now_ms
from narrator.events.game_events import ActionType, LogPhase


class ActionLogEntry(BaseModel):
    """One narrator-visible log line."""

    id: str
    sequence: int
    type: str
    label: str
    detail: str = ""
    created_at: int
    phase: LogPhase = LogPhase.SETUP
    step: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        detail = f" - {self.detail}" if self.detail else ""
        return f"#{self.sequence} [{self.type}] {self.label}{detail}"


class ActionLog:
    """Capped, newest-first action log with a monotonic sequence."""

    def __init__(self, limit: int = 500, clock: Callable[[], int] = now_ms):
        self._entries: deque[ActionLogEntry] = deque(maxlen=limit)
        self._sequence = 0
        self._clock = clock

    @property
    def sequence(self) -> int:
        """Sequence number of the latest entry (0 when empty)."""
        return self._sequence

    def log(
        self,
        type: ActionType | str,
        label: str,
        detail: str = "",
        *,
        phase: LogPhase = LogPhase.SETUP,
        step: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActionLogEntry:
        """Append an entry and return it."""
        self._sequence += 1
        created_at = self._clock()
        entry = ActionLogEntry(
            id=f"action-{created_at}-{self._sequence}",
            sequence=self._sequence,
            type=type.value if isinstance(type, ActionType) else str(type),
            label=label,
            detail=detail,
            created_at=created_at,
            phase=phase,
            step=step,
            metadata=dict(metadata or {}),
        )
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> list[ActionLogEntry]:
        """Entries newest first."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def latest(self) -> Optional[ActionLogEntry]:
        return self._entries[0] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._sequence = 0

    def load(self, entries: list[dict[str, Any]]) -> None:
        """Replace the log with persisted entries (any order)."""
        parsed = sorted(
            (ActionLogEntry.model_validate(raw) for raw in entries),
            key=lambda entry: entry.sequence,
        )
        self._entries.clear()
        for entry in parsed:
            self._entries.appendleft(entry)
        self._sequence = max((entry.sequence for entry in parsed), default=0)

    def to_yaml(self) -> str:
        """Serialize the log to YAML, oldest entry first."""
        data = [entry.model_dump(mode="json") for entry in reversed(self._entries)]
        return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def save_to_file(self, filepath: str) -> None:
        """Write the log to a YAML file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_yaml())

    @classmethod
    def load_from_file(cls, filepath: str, limit: int = 500) -> "ActionLog":
        """Read a log written by ``save_to_file``."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
        log = cls(limit=limit)
        log.load(data)
        return log
