"""GameValidator - runtime validation hooks for the narrated game.

This module provides a Protocol for checking state consistency at key
points in the game flow, so simulations and tests catch rule violations
early.

Usage:
    # In tests or simulations
    validator = CollectingValidator()
    game = NarratorGame(session, narrator, validator=validator)
    violations = validator.get_violations()

    # No overhead in production
    game = NarratorGame(session, narrator)
"""

from enum import Enum
from typing import Any, Optional, Protocol

from pydantic import BaseModel

from narrator.engine.game_state import GameState
from narrator.events.game_events import GamePhase, Winner


class ValidationSeverity(str, Enum):
    """Severity level of a validation violation."""

    ERROR = "error"
    WARNING = "warning"


class ValidationViolation(BaseModel):
    """A single rule violation detected during validation."""

    rule_id: str  # e.g. "state.dead_seats"
    category: str  # e.g. "State Consistency"
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    context: Optional[dict[str, Any]] = None


class GameValidator(Protocol):
    """Hooks for runtime validation at key game points.

    All methods are async and return nothing except ``on_game_over``,
    which returns every violation found.
    """

    async def on_game_start(self, state: GameState) -> None:
        """Called once roles are assigned."""
        ...

    async def on_phase_start(self, phase: GamePhase, state: GameState) -> None:
        """Called whenever the controller enters a new phase."""
        ...

    async def on_step_applied(self, step: str, state: GameState) -> None:
        """Called after a confirmed step mutated the state."""
        ...

    async def on_victory_check(self, state: GameState, is_over: bool, winner: Optional[Winner]) -> None:
        """Called after each win check."""
        ...

    async def on_game_over(self, winner: Optional[Winner], state: GameState) -> list[ValidationViolation]:
        """Called when the game ends. Returns all violations found."""
        ...


class NoOpValidator:
    """No-op validator for production use (zero overhead)."""

    async def on_game_start(self, state: GameState) -> None:
        pass

    async def on_phase_start(self, phase: GamePhase, state: GameState) -> None:
        pass

    async def on_step_applied(self, step: str, state: GameState) -> None:
        pass

    async def on_victory_check(self, state: GameState, is_over: bool, winner: Optional[Winner]) -> None:
        pass

    async def on_game_over(self, winner: Optional[Winner], state: GameState) -> list[ValidationViolation]:
        return []


def validate_state_consistency(state: GameState) -> list[ValidationViolation]:
    """Structural checks that must hold after every step."""
    violations = []
    category = "State Consistency"
    player_count = len(state.players)

    if len(state.roles) != player_count or len(state.jobs) != player_count:
        violations.append(ValidationViolation(
            rule_id="state.alignment",
            category=category,
            message=f"{player_count} players, {len(state.roles)} roles, {len(state.jobs)} job lists",
        ))

    if len(set(state.dead)) != len(state.dead):
        violations.append(ValidationViolation(
            rule_id="state.dead_unique",
            category=category,
            message=f"Duplicate dead seats: {state.dead}",
        ))
    invalid_dead = [seat for seat in state.dead if not state.is_valid_seat(seat)]
    if invalid_dead:
        violations.append(ValidationViolation(
            rule_id="state.dead_seats",
            category=category,
            message=f"Dead list holds unknown seats {invalid_dead}",
        ))

    for first, second in state.lovers:
        if first == second or not state.is_valid_seat(first) or not state.is_valid_seat(second):
            violations.append(ValidationViolation(
                rule_id="state.lovers",
                category=category,
                message=f"Invalid lover pair ({first}, {second})",
            ))

    for seat in (state.mayor, state.silenced, state.executioner_target):
        if seat is not None and not state.is_valid_seat(seat):
            violations.append(ValidationViolation(
                rule_id="state.seat_reference",
                category=category,
                message=f"Reference to unknown seat {seat}",
            ))

    trackers = state.trackers
    if trackers.witch_heal_remaining < 0 or trackers.witch_poison_remaining < 0:
        violations.append(ValidationViolation(
            rule_id="state.potions",
            category="Witch",
            message=(
                f"Negative potion count (heal={trackers.witch_heal_remaining}, "
                f"poison={trackers.witch_poison_remaining})"
            ),
        ))
    return violations


class CollectingValidator(NoOpValidator):
    """Validator that collects violations for later inspection.

    Use this in tests and simulations to verify game rules are followed.
    """

    def __init__(self):
        self._violations: list[ValidationViolation] = []
        self._phase_history: list[GamePhase] = []
        self._last_counters = (0, 0)

    def get_violations(self) -> list[ValidationViolation]:
        """Get all collected violations."""
        return list(self._violations)

    def clear(self) -> None:
        """Clear collected violations."""
        self._violations.clear()
        self._phase_history.clear()
        self._last_counters = (0, 0)

    def _check_counters(self, state: GameState) -> None:
        night, day = self._last_counters
        if state.night_counter < night or state.day_count < day:
            self._violations.append(ValidationViolation(
                rule_id="flow.counters_monotonic",
                category="Phase Order",
                message=(
                    f"Counters went backwards: night {night} -> {state.night_counter}, "
                    f"day {day} -> {state.day_count}"
                ),
            ))
        self._last_counters = (state.night_counter, state.day_count)

    async def on_game_start(self, state: GameState) -> None:
        """Validate the initial assignment."""
        self._violations.extend(validate_state_consistency(state))
        if state.dead:
            self._violations.append(ValidationViolation(
                rule_id="setup.everyone_alive",
                category="Initialization",
                message=f"Players dead at game start: {state.dead}",
            ))
        self._last_counters = (state.night_counter, state.day_count)

    async def on_phase_start(self, phase: GamePhase, state: GameState) -> None:
        """Track phase order and counter monotonicity."""
        previous = self._phase_history[-1] if self._phase_history else None
        if previous == GamePhase.GAME_OVER:
            self._violations.append(ValidationViolation(
                rule_id="flow.after_game_over",
                category="Phase Order",
                message=f"Entered {phase.value} after GAME_OVER",
            ))
        self._phase_history.append(phase)
        self._check_counters(state)

    async def on_step_applied(self, step: str, state: GameState) -> None:
        """Validate state consistency after each confirmed step."""
        for violation in validate_state_consistency(state):
            violation.context = {"step": step}
            self._violations.append(violation)
        self._check_counters(state)

    async def on_game_over(self, winner: Optional[Winner], state: GameState) -> list[ValidationViolation]:
        """Return all collected violations at game end."""
        self._violations.extend(validate_state_consistency(state))
        over, expected = state.is_game_over()
        if winner is not None and (not over or expected != winner):
            self._violations.append(ValidationViolation(
                rule_id="victory.declared_winner",
                category="Victory",
                message=f"Declared {winner.value}, state says {expected.value if expected else 'not over'}",
            ))
        return self.get_violations()


def create_validator(collect: bool = False) -> GameValidator:
    """Factory function to create appropriate validator.

    Args:
        collect: If True, returns CollectingValidator for tests.
                 If False, returns NoOpValidator for production.
    """
    if collect:
        return CollectingValidator()
    return NoOpValidator()
