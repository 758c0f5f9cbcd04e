"""Mayor election handler - on the first day the village elects a mayor.

Votes the mayor receives in later lynch votes count double.
"""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, parse_living_seats
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class MayorElectionHandler:
    """Handler for MAYOR_ELECTION."""

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Who does the village elect as mayor?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        seats, hint = parse_living_seats(state, selection, 1, 1)
        if seats is None:
            return HandlerResult.rejected(hint or "Please elect a mayor.")

        state.mayor = seats[0]
        name = state.name_of(seats[0])
        return HandlerResult(
            messages=[f"{name} is now the mayor!"],
            logs=[LogItem(type=ActionType.DAY, label="Mayor elected", detail=name)],
        )
