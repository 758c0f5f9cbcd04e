"""Checkpoints, night-step history, undo/redo, timers and timeline replay."""

from narrator.replay.checkpoints import (
    Checkpoint,
    CheckpointStore,
    NightStepEntry,
    NightStepHistory,
    find_checkpoint_for_sequence,
)
from narrator.replay.timers import PhaseTimerManager, TimerEvent, TimerEventKind, TimerInfo
from narrator.replay.undo import (
    KillCommand,
    PotionResetCommand,
    ReviveCommand,
    RewindNightCommand,
    RoleChangeCommand,
    UndoableAction,
    UndoManager,
    apply_command,
)

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "NightStepEntry",
    "NightStepHistory",
    "find_checkpoint_for_sequence",
    "PhaseTimerManager",
    "TimerEvent",
    "TimerEventKind",
    "TimerInfo",
    "KillCommand",
    "PotionResetCommand",
    "ReviveCommand",
    "RewindNightCommand",
    "RoleChangeCommand",
    "UndoableAction",
    "UndoManager",
    "apply_command",
]
