"""Seer and inquisitor handlers.

Both look at one living player. The seer learns the exact role; the
inquisitor only learns whether the player is a werewolf. Neither changes
game state.
"""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, parse_living_seats
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class SeerHandler:
    """Handler for the SEER night step."""

    step_id = NightStepId.SEER

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Whose role does the seer look at?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 1, 1)
        if seats is None:
            return HandlerResult.rejected(hint or "Choose a player to look at.")

        target = seats[0]
        name = state.name_of(target)
        role = state.role_of(target)
        return HandlerResult(
            messages=[f"{name} is the {role.value.title()}."],
            logs=[LogItem(type=ActionType.NIGHT, label="Seer looks", detail=name)],
        )


class InquisitorHandler:
    """Handler for the INQUISITOR night step."""

    step_id = NightStepId.INQUISITOR

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Whom does the inquisitor question?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 1, 1)
        if seats is None:
            return HandlerResult.rejected(hint or "Choose a player to question.")

        target = seats[0]
        name = state.name_of(target)
        verdict = "belongs" if state.is_werewolf(target) else "does not belong"
        return HandlerResult(
            messages=[f"{name} {verdict} to the werewolves."],
            logs=[LogItem(type=ActionType.NIGHT, label="Inquisitor questions", detail=name)],
        )
