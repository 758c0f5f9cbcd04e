"""Phase, outcome and log item types shared across the core."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class GamePhase(str, Enum):
    """States of the phase controller."""

    SETUP = "SETUP"
    NIGHT = "NIGHT"
    DAWN = "DAWN"  # night finished, day start pending on a timer
    HUNTER_SHOT = "HUNTER_SHOT"
    MAYOR_ELECTION = "MAYOR_ELECTION"
    DAY_ACCUSATION = "DAY_ACCUSATION"
    DAY_VOTE = "DAY_VOTE"
    DAY_RESOLUTION = "DAY_RESOLUTION"
    DUSK = "DUSK"  # day finished, night start pending on a timer
    GAME_OVER = "GAME_OVER"


class LogPhase(str, Enum):
    """Coarse phase stamped on action log entries."""

    SETUP = "setup"
    NIGHT = "night"
    DAY = "day"


class ActionType(str, Enum):
    """Kinds of narrator-visible log entries."""

    SETUP = "setup"
    INFO = "info"
    NIGHT = "night"
    DAY = "day"
    EVENT = "event"
    DEATH = "death"
    ADMIN = "admin"
    MACRO = "macro"
    UNDO = "undo"
    REDO = "redo"
    CHECKPOINT = "checkpoint"
    REPLAY = "replay"
    VICTORY = "victory"


class DeathCause(str, Enum):
    """Cause of death."""

    WEREWOLF_KILL = "WEREWOLF_KILL"
    POISON = "POISON"
    LYNCH = "LYNCH"
    SCAPEGOAT = "SCAPEGOAT"
    SPOTLIGHT = "SPOTLIGHT"
    HUNTER_SHOT = "HUNTER_SHOT"
    LOVER = "LOVER"
    ADMIN = "ADMIN"


class Winner(str, Enum):
    """Who won the game."""

    EXECUTIONER = "EXECUTIONER"
    LOVERS = "LOVERS"
    PEACEMAKER = "PEACEMAKER"
    VILLAGE = "VILLAGE"
    WEREWOLVES = "WEREWOLVES"


class StepStatus(str, Enum):
    """Result of a confirmed step."""

    APPLIED = "APPLIED"
    REJECTED = "REJECTED"  # missing or invalid selection, state untouched
    SKIPPED = "SKIPPED"  # nothing to do


class LogItem(BaseModel):
    """Log line produced by a handler or event card, recorded by the session."""

    type: ActionType = ActionType.INFO
    label: str
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.label}: {self.detail}" if self.detail else self.label


class DeathRecord(BaseModel):
    """A single death, including chained lover deaths."""

    seat: int
    cause: DeathCause
    source: Optional[int] = None  # lover whose death caused this one
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())

    def __str__(self) -> str:
        source = f", source={self.source}" if self.source is not None else ""
        return f"Death(seat={self.seat}, cause={self.cause.value}{source})"
