"""Full-state checkpoints and the per-night step history."""

import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional
from pydantic import BaseModel, Field

from narrator.clock import now_ms

logger = logging.getLogger(__name__)


class Checkpoint(BaseModel):
    """A full snapshot taken at a phase boundary."""

    id: str
    label: str
    timestamp: int
    action_sequence: int
    state: dict[str, Any] = Field(default_factory=dict)


class CheckpointStore:
    """Ring buffer of checkpoints, oldest evicted first.

    Capturing is suppressed while a checkpoint is being restored so that
    the restore itself never produces a new checkpoint.
    """

    def __init__(self, limit: int = 20, clock: Callable[[], int] = now_ms):
        self._items: deque[Checkpoint] = deque(maxlen=limit)
        self._counter = 0
        self._clock = clock
        self.restoring = False

    @contextmanager
    def restoring_state(self) -> Iterator[None]:
        previous = self.restoring
        self.restoring = True
        try:
            yield
        finally:
            self.restoring = previous

    def capture(self, label: str, state: dict[str, Any], action_sequence: int) -> Optional[Checkpoint]:
        """Store a snapshot; returns None while restoring."""
        if self.restoring:
            return None
        self._counter += 1
        timestamp = self._clock()
        checkpoint = Checkpoint(
            id=f"checkpoint-{timestamp}-{self._counter}",
            label=label,
            timestamp=timestamp,
            action_sequence=action_sequence,
            state=state,
        )
        self._items.append(checkpoint)
        logger.debug("Checkpoint %s captured at sequence %d", label, action_sequence)
        return checkpoint

    def pop_last(self) -> Optional[Checkpoint]:
        return self._items.pop() if self._items else None

    def latest(self) -> Optional[Checkpoint]:
        return self._items[-1] if self._items else None

    def all(self) -> list[Checkpoint]:
        """Checkpoints oldest first."""
        return [checkpoint.model_copy(deep=True) for checkpoint in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._items.clear()

    def load(self, checkpoints: list[dict[str, Any]]) -> None:
        """Replace the buffer with persisted checkpoints (any order)."""
        parsed = sorted(
            (Checkpoint.model_validate(raw) for raw in checkpoints),
            key=lambda checkpoint: checkpoint.timestamp,
        )
        self._items.clear()
        self._items.extend(parsed)
        self._counter = max(self._counter, len(parsed))

    def find_for_sequence(self, sequence: int) -> Optional[Checkpoint]:
        return find_checkpoint_for_sequence(list(self._items), sequence)


def find_checkpoint_for_sequence(checkpoints: list[Checkpoint], sequence: int) -> Optional[Checkpoint]:
    """Checkpoint with the greatest ``action_sequence <= sequence``.

    Falls back to the earliest checkpoint when every checkpoint lies after
    ``sequence``; returns None only when there are no checkpoints.
    """
    if not checkpoints:
        return None
    best: Optional[Checkpoint] = None
    for checkpoint in checkpoints:
        if checkpoint.action_sequence <= sequence:
            if best is None or checkpoint.action_sequence >= best.action_sequence:
                best = checkpoint
    if best is None:
        best = min(checkpoints, key=lambda checkpoint: (checkpoint.action_sequence, checkpoint.timestamp))
    return best


class NightStepEntry(BaseModel):
    """State as it was when a night step was first shown."""

    index: int
    step: str
    state: dict[str, Any]


class NightStepHistory:
    """Linear history of night steps for stepping backwards within a night."""

    def __init__(self) -> None:
        self._entries: list[NightStepEntry] = []

    def capture(self, index: int, step: str, state: dict[str, Any]) -> bool:
        """Record the state on entering step ``index``.

        Re-entering the step currently on top is ignored; entries at or after
        ``index`` are discarded first (forward history is pruned).
        """
        if self._entries and self._entries[-1].index == index:
            return False
        while self._entries and self._entries[-1].index >= index:
            self._entries.pop()
        self._entries.append(NightStepEntry(index=index, step=step, state=state))
        return True

    def step_back(self) -> Optional[NightStepEntry]:
        """Drop the current step and return the previous one to restore."""
        if len(self._entries) < 2:
            return None
        self._entries.pop()
        return self._entries[-1].model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
