"""Admin undo/redo as value-type command records.

Each command holds only the data needed to compute its inverse; a single
interpreter (``apply_command``) applies a command forwards or backwards to
a game state. The history is linear: recording a new action clears the redo
stack.
"""

from typing import TYPE_CHECKING, Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from narrator.events.game_events import GamePhase, Winner
from narrator.models.player import Role

if TYPE_CHECKING:
    from narrator.engine.game_state import GameState


class KillCommand(BaseModel):
    """Seats moved from alive to dead (the target plus its lover cascade)."""

    kind: Literal["kill"] = "kill"
    seats: list[int]


class ReviveCommand(BaseModel):
    """Seats moved from dead to alive."""

    kind: Literal["revive"] = "revive"
    seats: list[int]


class RoleChangeCommand(BaseModel):
    kind: Literal["role_change"] = "role_change"
    seat: int
    old_role: Role
    new_role: Role


class PotionResetCommand(BaseModel):
    kind: Literal["potion_reset"] = "potion_reset"
    old_heal: int
    old_poison: int
    new_heal: int = 1
    new_poison: int = 1


class RewindNightCommand(BaseModel):
    """The current night's victims revived and the victim list cleared."""

    kind: Literal["rewind_night"] = "rewind_night"
    victims: list[int]


UndoCommand = Annotated[
    Union[KillCommand, ReviveCommand, RoleChangeCommand, PotionResetCommand, RewindNightCommand],
    Field(discriminator="kind"),
]


class UndoableAction(BaseModel):
    """A narrator edit on the undo or redo stack."""

    label: str
    detail: str = ""
    command: UndoCommand
    # Game position before the edit, so undoing a game-ending edit reopens the game
    phase_before: Optional[GamePhase] = None
    winner_before: Optional[Winner] = None


def apply_command(state: "GameState", command: UndoCommand, inverse: bool = False) -> None:
    """Apply ``command`` to ``state`` (or its inverse)."""
    if isinstance(command, KillCommand):
        for seat in command.seats:
            if inverse:
                state.revive(seat)
            else:
                state.kill(seat)
    elif isinstance(command, ReviveCommand):
        for seat in command.seats:
            if inverse:
                state.kill(seat)
            else:
                state.revive(seat)
    elif isinstance(command, RoleChangeCommand):
        state.roles[command.seat] = command.old_role if inverse else command.new_role
    elif isinstance(command, PotionResetCommand):
        trackers = state.trackers
        trackers.witch_heal_remaining = command.old_heal if inverse else command.new_heal
        trackers.witch_poison_remaining = command.old_poison if inverse else command.new_poison
    elif isinstance(command, RewindNightCommand):
        if inverse:
            state.current_night_victims = list(command.victims)
            for seat in command.victims:
                state.kill(seat)
        else:
            for seat in command.victims:
                state.revive(seat)
            state.current_night_victims = []
    else:
        raise TypeError(f"Unknown undo command {command!r}")


class UndoManager:
    """Linear undo/redo stacks of ``UndoableAction`` records."""

    def __init__(self) -> None:
        self._undo: list[UndoableAction] = []
        self._redo: list[UndoableAction] = []

    def record(self, action: UndoableAction) -> None:
        """Push an already-applied action; forward (redo) history is discarded."""
        self._undo.append(action)
        self._redo.clear()

    def undo(self, state: "GameState") -> Optional[UndoableAction]:
        if not self._undo:
            return None
        action = self._undo.pop()
        apply_command(state, action.command, inverse=True)
        self._redo.append(action)
        return action

    def redo(self, state: "GameState") -> Optional[UndoableAction]:
        if not self._redo:
            return None
        action = self._redo.pop()
        apply_command(state, action.command)
        self._undo.append(action)
        return action

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_stack(self) -> list[UndoableAction]:
        return list(self._undo)

    @property
    def redo_stack(self) -> list[UndoableAction]:
        return list(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
