"""First-night information steps: the executioner and the siblings.

Neither step takes a selection; confirming simply shows the narrator what
to whisper.
"""

from typing import Optional

from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult, format_seats
from narrator.models.night_steps import NightStepId
from narrator.models.player import Role
from narrator.ui.choices import ChoiceSpec


class ExecutionerInfoHandler:
    """Tells the executioner who must be lynched."""

    step_id = NightStepId.EXECUTIONER

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        return None

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        executioners = state.holders_of(Role.EXECUTIONER)
        if state.executioner_target is None or not executioners:
            return HandlerResult.skipped("The executioner has no target.")
        target = state.name_of(state.executioner_target)
        return HandlerResult(
            messages=[f"The executioner is {format_seats(state, executioners)}. Their target is {target}."],
            logs=[LogItem(type=ActionType.INFO, label="Executioner target", detail=target)],
        )


class SiblingsInfoHandler:
    """Lets the siblings recognise each other."""

    step_id = NightStepId.SIBLINGS

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        return None

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        siblings = state.holders_of(Role.SIBLING)
        if not siblings:
            return HandlerResult.skipped("No siblings are alive.")
        names = format_seats(state, siblings)
        return HandlerResult(
            messages=[f"The siblings are: {names}."],
            logs=[LogItem(type=ActionType.INFO, label="Siblings", detail=names)],
        )
