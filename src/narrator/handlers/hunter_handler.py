"""Hunter handler - the dying hunter's revenge shot.

The shot is available once per game. The target dies with their lovers.
"""

from typing import Optional

from narrator.events.game_events import ActionType, DeathCause, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, parse_living_seats
from narrator.handlers.death_resolution_handler import DeathResolutionHandler
from narrator.ui.choices import ChoiceSpec, make_seat_choice


class HunterHandler:
    """Handler for HUNTER_SHOT.

    ``hunter`` is the seat of the hunter taking the shot.
    """

    def __init__(self, death_resolution: Optional[DeathResolutionHandler] = None):
        self.death_resolution = death_resolution or DeathResolutionHandler()

    def targets(self, context: HandlerContext, hunter: int) -> list[int]:
        return [seat for seat in context.state.living_seats() if seat != hunter]

    def build_choice_spec(self, context: HandlerContext, hunter: int) -> Optional[ChoiceSpec]:
        seats = self.targets(context, hunter)
        return make_seat_choice(
            prompt=f"{context.state.name_of(hunter)} the hunter takes someone along. Who?",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=True,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str], hunter: int) -> HandlerResult:
        state = context.state
        trackers = state.trackers
        if trackers.hunter_shot_used:
            return HandlerResult.skipped("The hunter's shot is already spent.")

        seats, hint = parse_living_seats(state, selection, 0, 1, allowed=self.targets(context, hunter))
        if seats is None:
            return HandlerResult.rejected(hint or "Choose the hunter's target, or skip.")

        trackers.hunter_shot_used = True
        hunter_name = state.name_of(hunter)
        if not seats:
            return HandlerResult(
                messages=[f"{hunter_name} lowers the rifle."],
                logs=[LogItem(type=ActionType.DAY, label="Hunter holds fire", detail=hunter_name)],
            )

        result = HandlerResult(
            logs=[LogItem(type=ActionType.DAY, label="Hunter shoots", detail=state.name_of(seats[0]))],
        )
        return result.merge(self.death_resolution(state, seats[0], DeathCause.HUNTER_SHOT))
