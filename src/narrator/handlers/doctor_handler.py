"""Doctor handler.

After a night with two or more victims, the doctor may heal one of them the
following night. Healing a victim brings them back; declining (or nobody
left to heal) clears the pending targets.
"""

from typing import Optional

from narrator.engine.game_state import GameState
from narrator.events.game_events import ActionType, LogItem
from narrator.handlers.base import HandlerContext, HandlerResult
from narrator.models.night_steps import NightStepId
from narrator.ui.choices import ChoiceSpec, make_seat_choice, parse_seat_answer


def doctor_available_targets(state: GameState) -> list[int]:
    """Pending targets that are still dead."""
    return [seat for seat in state.trackers.doctor_pending_targets if seat in state.dead]


class DoctorHandler:
    """Handler for the DOCTOR night step."""

    step_id = NightStepId.DOCTOR

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        targets = doctor_available_targets(context.state)
        if not targets:
            return None
        return make_seat_choice(
            prompt="Which of last night's victims does the doctor heal?",
            seats=targets,
            seat_info=context.seat_info(targets),
            allow_none=True,
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> HandlerResult:
        state = context.state
        trackers = state.trackers
        targets = doctor_available_targets(state)

        if not targets:
            trackers.clear_doctor_pending()
            return HandlerResult.skipped("There is nobody for the doctor to heal.")

        seats = parse_seat_answer(selection)
        if seats is None or len(seats) > 1:
            return HandlerResult.rejected("Choose one victim to heal, or skip.")

        if not seats:
            trackers.clear_doctor_pending()
            return HandlerResult(
                messages=["The doctor does not heal anyone."],
                logs=[LogItem(type=ActionType.NIGHT, label="Doctor abstains", detail="No heal chosen")],
            )

        target = seats[0]
        if target not in targets:
            return HandlerResult.rejected(f"{state.name_of(target)} (#{target}) cannot be healed tonight.")

        state.revive(target)
        trackers.doctor_last_heal_night = context.night
        if target in trackers.hunter_died_last_night:
            trackers.hunter_died_last_night.remove(target)
        trackers.clear_doctor_pending()

        name = state.name_of(target)
        return HandlerResult(
            messages=[f"The doctor healed {name}."],
            logs=[LogItem(type=ActionType.NIGHT, label="Doctor heals", detail=name)],
        )
