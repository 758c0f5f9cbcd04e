"""Silencer handler - one living player may not speak or vote tomorrow."""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, parse_living_seats
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class SilencerHandler:
    """Handler for the SILENCER night step."""

    step_id = NightStepId.SILENCER

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Who is silenced tomorrow?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 1, 1)
        if seats is None:
            return HandlerResult.rejected(hint or "Choose a player to silence.")

        state.silenced = seats[0]
        name = state.name_of(seats[0])
        return HandlerResult(
            messages=[f"{name} must stay silent tomorrow."],
            logs=[LogItem(type=ActionType.NIGHT, label="Silenced", detail=name)],
        )
