"""Witch handler for the narrator.

The witch may heal one of tonight's victims or poison one living player,
once each per game. A poison aimed at a player the bodyguard protects
tonight is spent without killing.
"""

from typing import Optional

from narrator.events.game_events import ActionType, DeathCause, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult
from narrator.handlers.death_resolution_handler import DeathResolutionHandler
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceOption, ChoiceSpec, ChoiceType, NONE_ANSWERS

HEAL = "heal"
POISON = "poison"


class WitchHandler:
    """Handler for the WITCH night step.

    Selections are ``heal:<seat>``, ``poison:<seat>`` or empty/``pass``.
    """

    step_id = NightStepId.WITCH

    def __init__(self, death_resolution: Optional[DeathResolutionHandler] = None):
        self.death_resolution = death_resolution or DeathResolutionHandler()

    def heal_targets(self, context: HandlerContext) -> list[int]:
        state = context.state
        if state.trackers.witch_heal_remaining <= 0:
            return []
        return [seat for seat in state.current_night_victims if seat in state.dead]

    def poison_targets(self, context: HandlerContext) -> list[int]:
        state = context.state
        if state.trackers.witch_poison_remaining <= 0:
            return []
        return state.living_seats()

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        state = context.state
        trackers = state.trackers
        options = []
        for seat in self.heal_targets(context):
            options.append(ChoiceOption(
                value=f"{HEAL}:{seat}",
                display=f"Heal {state.name_of(seat)} ({trackers.witch_heal_remaining} left)",
                seat_hint=seat,
            ))
        for seat in self.poison_targets(context):
            options.append(ChoiceOption(
                value=f"{POISON}:{seat}",
                display=f"Poison {state.name_of(seat)} ({trackers.witch_poison_remaining} left)",
                seat_hint=seat,
            ))
        return ChoiceSpec(
            choice_type=ChoiceType.SINGLE,
            prompt="Does the witch heal or poison someone?",
            options=options,
            allow_none=True,
            none_display="Pass",
            seat_info=context.seat_info(list(range(len(state.players)))),
        )

    def _parse(self, selection: Optional[str]) -> tuple[Optional[str], Optional[int]]:
        text = (selection or "").strip().lower()
        if text in NONE_ANSWERS:
            return "", None
        action, sep, seat_text = text.partition(":")
        if not sep or action not in (HEAL, POISON):
            return None, None
        try:
            return action, int(seat_text)
        except ValueError:
            return None, None

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        trackers = state.trackers
        action, target = self._parse(selection)

        if action is None:
            return HandlerResult.rejected("Answer 'heal:<seat>', 'poison:<seat>' or 'pass'.")

        if action == "":
            return HandlerResult(
                messages=["The witch does nothing tonight."],
                logs=[LogItem(type=ActionType.NIGHT, label="Witch passes")],
            )

        name = state.name_of(target)

        if action == HEAL:
            if trackers.witch_heal_remaining <= 0:
                return HandlerResult.rejected("The healing potion is used up.")
            if target not in self.heal_targets(context):
                return HandlerResult.rejected(f"{name} (#{target}) is not one of tonight's victims.")
            state.revive(target)
            state.current_night_victims = [seat for seat in state.current_night_victims if seat != target]
            if target in trackers.hunter_died_last_night:
                trackers.hunter_died_last_night.remove(target)
            trackers.witch_heal_remaining -= 1
            return HandlerResult(
                messages=[f"The witch healed {name}."],
                logs=[LogItem(type=ActionType.NIGHT, label="Witch heals", detail=name)],
            )

        if trackers.witch_poison_remaining <= 0:
            return HandlerResult.rejected("The poison is used up.")
        if not state.is_alive(target):
            return HandlerResult.rejected(f"{name} (#{target}) is not alive.")

        trackers.witch_poison_remaining -= 1
        if trackers.is_protected(target, context.night):
            trackers.register_bodyguard_save(target)
            return HandlerResult(
                messages=[f"The witch tried to poison {name}, but the bodyguard saved them."],
                logs=[LogItem(type=ActionType.NIGHT, label="Bodyguard save (witch)", detail=name)],
            )

        result = HandlerResult(
            logs=[LogItem(type=ActionType.NIGHT, label="Witch poisons", detail=name)],
        )
        return result.merge(self.death_resolution(state, target, DeathCause.POISON, at_night=True))
