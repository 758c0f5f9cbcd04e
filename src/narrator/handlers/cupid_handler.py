"""Cupid handler - pairs two living players as lovers on the first night."""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, format_seats, parse_living_seats
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class CupidHandler:
    """Handler for the CUPID night step."""

    step_id = NightStepId.CUPID

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Which two players does Cupid make lovers?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
            min_select=2,
            max_select=2,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 2, 2)
        if seats is None:
            return HandlerResult.rejected(hint or "Select exactly two lovers.")

        first, second = seats
        state.lovers.append((first, second))
        names = format_seats(state, seats)
        return HandlerResult(
            messages=[f"{state.name_of(first)} and {state.name_of(second)} are now lovers."],
            logs=[LogItem(type=ActionType.NIGHT, label="Lovers chosen", detail=names)],
        )
