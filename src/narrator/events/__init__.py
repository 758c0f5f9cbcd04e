"""Events package - phase enums, log items and the action log."""

from narrator.events.game_events import (
    GamePhase,
    LogPhase,
    ActionType,
    DeathCause,
    Winner,
    StepStatus,
    LogItem,
    DeathRecord,
)
from narrator.events.action_log import ActionLogEntry, ActionLog

__all__ = [
    "GamePhase",
    "LogPhase",
    "ActionType",
    "DeathCause",
    "Winner",
    "StepStatus",
    "LogItem",
    "DeathRecord",
    "ActionLogEntry",
    "ActionLog",
]
