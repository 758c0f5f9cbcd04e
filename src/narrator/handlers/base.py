"""Shared base types for narrator step handlers.

This module contains the types every handler uses:
- HandlerContext: the game state and event config a handler works on
- HandlerResult: outcome of one confirmed step (status, messages, log items, deaths)
- StepHandler Protocol: interface of night and day step handlers
- helpers to parse and check seat selections
"""

from typing import Optional, Protocol

from pydantic import BaseModel, Field

from narrator.config import EventConfig
from narrator.engine.game_state import GameState
from narrator.events.game_events import DeathRecord, LogItem, StepStatus
from narrator.ui.choices import ChoiceSpec, parse_seat_answer


# ============================================================================
# Shared Handler Types
# ============================================================================


class HandlerContext(BaseModel):
    """What a handler sees: the live game state and the event switches.

    ``state`` is the session's own GameState instance; handlers mutate it
    in place once a selection has been validated.
    """

    state: GameState
    config: EventConfig = Field(default_factory=EventConfig)
    accused: list[int] = Field(default_factory=list)  # today's ballot

    @property
    def night(self) -> int:
        return self.state.night_counter

    def seat_info(self, seats: Optional[list[int]] = None) -> dict[int, str]:
        """Seat -> player name for choice rendering."""
        seats = self.state.living_seats() if seats is None else seats
        return {seat: self.state.name_of(seat) for seat in seats}


class HandlerResult(BaseModel):
    """Output from handlers for one confirmed step.

    - status: APPLIED, REJECTED (state untouched, ``hint`` explains why) or SKIPPED
    - messages: narrator-facing text
    - logs: items the session records to the action log
    - deaths: every death caused by this step, lover cascade included
    - pending_hunters: hunters who died by day and still hold their shot
    """

    status: StepStatus = StepStatus.APPLIED
    messages: list[str] = Field(default_factory=list)
    logs: list[LogItem] = Field(default_factory=list)
    deaths: list[DeathRecord] = Field(default_factory=list)
    pending_hunters: list[int] = Field(default_factory=list)
    hint: Optional[str] = None
    debug_info: Optional[str] = None

    @classmethod
    def rejected(cls, hint: str) -> "HandlerResult":
        return cls(status=StepStatus.REJECTED, hint=hint)

    @classmethod
    def skipped(cls, message: Optional[str] = None, debug_info: Optional[str] = None) -> "HandlerResult":
        return cls(
            status=StepStatus.SKIPPED,
            messages=[message] if message else [],
            debug_info=debug_info,
        )

    @property
    def accepted(self) -> bool:
        return self.status != StepStatus.REJECTED

    def merge(self, other: "HandlerResult") -> "HandlerResult":
        """Fold another result's output into this one (status is kept)."""
        self.messages.extend(other.messages)
        self.logs.extend(other.logs)
        self.deaths.extend(other.deaths)
        for seat in other.pending_hunters:
            if seat not in self.pending_hunters:
                self.pending_hunters.append(seat)
        return self


# ============================================================================
# Handler Protocol
# ============================================================================


class StepHandler(Protocol):
    """A night or day step the narrator confirms.

    Handlers build a ChoiceSpec describing what the narrator must pick, then
    parse and validate the raw answer. Validation failures return REJECTED
    without mutating state.
    """

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        """Describe the selection, or None when the step needs no input."""
        ...

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        """Apply the narrator's raw selection."""
        ...


# ============================================================================
# Selection helpers
# ============================================================================


def parse_living_seats(
    state: GameState,
    selection: Optional[str],
    min_count: int,
    max_count: int,
    allowed: Optional[list[int]] = None,
) -> tuple[Optional[list[int]], Optional[str]]:
    """Parse a seat selection and check it against living players.

    Returns (seats, None) on success or (None, hint) on failure. An empty
    selection is only valid when ``min_count`` is 0.
    """
    seats = parse_seat_answer(selection)
    if seats is None:
        return None, f"Could not read seats from {selection!r}. Enter seat numbers like '3' or '1,4'."
    if not seats:
        if min_count == 0:
            return [], None
        return None, "A selection is required for this step."
    if len(seats) < min_count or len(seats) > max_count:
        if min_count == max_count:
            return None, f"Select exactly {min_count} player(s)."
        return None, f"Select between {min_count} and {max_count} player(s)."
    for seat in seats:
        if not state.is_valid_seat(seat):
            return None, f"Seat {seat} does not exist."
        if not state.is_alive(seat):
            return None, f"{state.name_of(seat)} (#{seat}) is dead."
        if allowed is not None and seat not in allowed:
            return None, f"{state.name_of(seat)} (#{seat}) cannot be chosen now."
    return seats, None


def format_seats(state: GameState, seats: list[int]) -> str:
    """Comma separated player names."""
    return ", ".join(state.name_of(seat) for seat in seats) or "nobody"
