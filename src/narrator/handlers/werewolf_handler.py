"""Werewolf handler for the narrator.

The werewolves pick one victim, or two while a Blood Moon is active. The
kill resolves immediately, in selection order:
- the first-night shield (if enabled and unused) spares every victim of night 1
- a victim protected by the bodyguard tonight survives
- a Cursed victim survives and becomes a Werewolf
- anyone else dies, taking their lover along
"""

import logging
from typing import Optional

from narrator.events.game_events import ActionType, DeathCause, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, format_seats, parse_living_seats
from narrator.handlers.death_resolution_handler import DeathResolutionHandler
from narrator.models.night_steps import NightStepId
from narrator.models.player import Role
from narrator.ui.choices import ChoiceSpec, make_seat_choice

logger = logging.getLogger(__name__)


class WerewolfHandler:
    """Handler for the WEREWOLF night step."""

    step_id = NightStepId.WEREWOLF

    def __init__(self, death_resolution: Optional[DeathResolutionHandler] = None):
        self.death_resolution = death_resolution or DeathResolutionHandler()

    def max_victims(self, context: HandlerContext) -> int:
        return 2 if context.state.trackers.blood_moon_active else 1

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        seats = context.state.living_seats()
        limit = self.max_victims(context)
        prompt = "Whom do the werewolves kill tonight?"
        if limit > 1:
            prompt = "Blood Moon! The werewolves may choose two victims tonight."
        return make_seat_choice(
            prompt=prompt,
            seats=seats,
            seat_info=context.seat_info(seats),
            allow_none=False,
            max_select=limit,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        trackers = state.trackers
        limit = self.max_victims(context)
        victims, hint = parse_living_seats(state, selection, 1, limit)
        if victims is None:
            return HandlerResult.rejected(hint or "The werewolves must choose a victim.")

        names = format_seats(state, victims)
        result = HandlerResult(
            logs=[LogItem(type=ActionType.NIGHT, label="Werewolves choose", detail=names)],
        )

        if context.config.first_night_shield and not trackers.first_night_shield_used and context.night <= 1:
            trackers.first_night_shield_used = True
            verb = "survive" if len(victims) > 1 else "survives"
            result.messages.append(f"First-night shield: {names} {verb}.")
            result.logs.append(LogItem(type=ActionType.EVENT, label="First-night shield", detail=names))
            return result

        for victim in victims:
            name = state.name_of(victim)
            if trackers.is_protected(victim, context.night):
                trackers.register_bodyguard_save(victim)
                result.messages.append(f"The bodyguard saved {name} from the werewolves.")
                result.logs.append(LogItem(type=ActionType.NIGHT, label="Bodyguard save", detail=name))
                continue

            if state.role_of(victim) == Role.CURSED:
                state.roles[victim] = Role.WEREWOLF
                logger.info("Cursed player %s turned into a werewolf", name)
                result.messages.append(
                    f"{name} was the Cursed and is now a Werewolf. Do not tell them; "
                    "they wake with the werewolves from the next night on."
                )
                result.logs.append(LogItem(type=ActionType.NIGHT, label="Cursed converted", detail=name))
                continue

            result.merge(self.death_resolution(state, victim, DeathCause.WEREWOLF_KILL, at_night=True))

        return result
