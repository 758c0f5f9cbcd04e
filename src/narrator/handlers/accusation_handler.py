"""Accusation handler for the day phase.

The village names the players it wants to put to a vote. Accusing the
Celebrity has special effects:
- the first accusation puts them in the spotlight (votes against them count double)
- a second accusation, on any day, eliminates them on the spot
"""

import logging
from typing import Optional

from pydantic import Field

from narrator.engine.game_state import GameState
from narrator.events.game_events import ActionType, DeathCause, LogItem, StepStatus
from narrator.handlers.base import HandlerContext, HandlerResult, format_seats, parse_living_seats
from narrator.handlers.death_resolution_handler import DeathResolutionHandler
from narrator.models.player import Role
from narrator.ui.choices import ChoiceSpec, make_seat_choice

logger = logging.getLogger(__name__)


class AccusationResult(HandlerResult):
    """Accusation outcome.

    - accused: living players going to the vote (empty when nobody was accused
      or a spotlight elimination ended the day's trial)
    - eliminated: celebrities eliminated by a second accusation
    """

    accused: list[int] = Field(default_factory=list)
    eliminated: list[int] = Field(default_factory=list)


class AccusationHandler:
    """Handler for DAY_ACCUSATION."""

    def __init__(self, death_resolution: Optional[DeathResolutionHandler] = None):
        self.death_resolution = death_resolution or DeathResolutionHandler()

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        return make_seat_choice(
            prompt="Who is accused today? (several allowed, skip for none)",
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=True,
            max_select=len(seats),
        )

    def register_accusations(self, state: GameState, seats: list[int]) -> AccusationResult:
        """Count celebrity accusations and eliminate on the second one."""
        result = AccusationResult()
        trackers = state.trackers
        to_eliminate: list[int] = []

        for seat in dict.fromkeys(seats):
            if state.role_of(seat) != Role.CELEBRITY:
                continue
            previous = trackers.celebrity_accusations.get(seat, 0)
            trackers.celebrity_accusations[seat] = previous + 1
            name = state.name_of(seat)
            if previous == 0 and not trackers.has_spotlight(seat):
                trackers.celebrity_spotlight.append(seat)
                result.messages.append(f"{name} is now in the spotlight! Votes against them count double.")
                result.logs.append(LogItem(type=ActionType.DAY, label="Spotlight", detail=name))
            if previous + 1 >= 2:
                to_eliminate.append(seat)

        for seat in to_eliminate:
            resolution = self.death_resolution(state, seat, DeathCause.SPOTLIGHT)
            if resolution.deaths:
                result.eliminated.append(seat)
                result.merge(resolution)

        if result.eliminated:
            state.peace_days = 0
            logger.info("Spotlight elimination of %s", result.eliminated)
        return result

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> AccusationResult:
        state = context.state
        living = state.living_seats()
        seats, hint = parse_living_seats(state, selection, 0, len(living))
        if seats is None:
            return AccusationResult(status=StepStatus.REJECTED, hint=hint)

        if not seats:
            state.peace_days += 1
            return AccusationResult(
                messages=["No accusations were made. Nobody is lynched today."],
                logs=[LogItem(type=ActionType.DAY, label="No accusation")],
            )

        result = self.register_accusations(state, seats)
        if result.eliminated:
            return result

        result.accused = [seat for seat in seats if state.is_alive(seat)]
        names = format_seats(state, result.accused)
        result.messages.append(f"Accused: {names}. Cast your votes.")
        result.logs.append(LogItem(type=ActionType.DAY, label="Accused", detail=names))
        return result
