"""Bodyguard handler.

The bodyguard protects one living player for the current night. The
protection is stamped with the night number so it never leaks into later
nights.
"""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, parse_living_seats
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class BodyguardHandler:
    """Handler for the BODYGUARD night step."""

    step_id = NightStepId.BODYGUARD

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Who does the bodyguard protect tonight?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 1, 1)
        if seats is None:
            return HandlerResult.rejected(hint or "Choose someone to protect.")

        target = seats[0]
        trackers = state.trackers
        trackers.bodyguard_target = target
        trackers.bodyguard_night = context.night
        trackers.bodyguard_saved = []

        name = state.name_of(target)
        return HandlerResult(
            messages=[f"The bodyguard protects {name}."],
            logs=[LogItem(type=ActionType.NIGHT, label="Bodyguard protects", detail=name)],
        )
