"""PhaseController - the night/day state machine.

The controller sequences night steps and the day flow (mayor election,
accusation, vote, resolution) on a GameSession. Every operation is
synchronous, takes the narrator's raw selection where one is needed and
returns a HandlerResult; expected game-flow conditions (wrong phase, bad
selection, nothing to do) never raise.

Phase transitions:

    SETUP -> NIGHT -> DAWN -(timer)-> [HUNTER_SHOT] -> [MAYOR_ELECTION]
          -> DAY_ACCUSATION -> [DAY_VOTE] -> [HUNTER_SHOT] -> DAY_RESOLUTION
          -(timer)-> DUSK -(timer)-> NIGHT ...

and GAME_OVER from any elimination. Checkpoints and night-step snapshots
are captured before the mutation they protect.
"""

import logging
from typing import TYPE_CHECKING, Optional

from narrator.events.game_events import ActionType, GamePhase, StepStatus
from narrator.handlers import (
    AccusationHandler,
    DeathResolutionHandler,
    HandlerContext,
    HandlerResult,
    HunterHandler,
    MayorElectionHandler,
    StepHandler,
    VotingHandler,
    default_night_handlers,
    doctor_available_targets,
    format_seats,
)
from narrator.models.night_steps import (
    DEFAULT_NIGHT_SEQUENCE,
    NightStepDefinition,
    NightStepId,
    get_step_definition,
)
from narrator.models.player import Job
from narrator.scheduler.handlers import CardId
from narrator.ui.choices import ChoiceSpec

if TYPE_CHECKING:
    from narrator.engine.game_session import GameSession
    from narrator.engine.game_state import GameState

logger = logging.getLogger(__name__)


def step_has_living_actor(definition: NightStepDefinition, state: "GameState") -> bool:
    """A step can be shown while someone able to perform it is alive."""
    for role in definition.requires_roles:
        if not state.holders_of(role):
            return False
    for job in definition.requires_jobs:
        if not state.job_holders(job):
            return False
    return True


def doctor_should_act(state: "GameState", upcoming_night: int) -> bool:
    """Living doctor, pending heal due tonight and targets still dead."""
    trackers = state.trackers
    return (
        bool(state.job_holders(Job.DOCTOR))
        and trackers.doctor_pending_night == upcoming_night
        and bool(doctor_available_targets(state))
    )


def build_night_sequence(
    state: "GameState",
    upcoming_night: int,
    sequence: Optional[list[NightStepDefinition]] = None,
) -> list[NightStepId]:
    """Steps for the upcoming night, from living roles, jobs and conditions."""
    steps = []
    for definition in sequence or DEFAULT_NIGHT_SEQUENCE:
        if definition.first_night_only and upcoming_night != 1:
            continue
        if definition.requires_doctor_targets and not doctor_should_act(state, upcoming_night):
            continue
        if not step_has_living_actor(definition, state):
            continue
        steps.append(definition.step_id)
    return steps


class PhaseController:
    """Drives one GameSession through nights and days."""

    def __init__(
        self,
        session: "GameSession",
        night_handlers: Optional[dict[NightStepId, StepHandler]] = None,
    ):
        self.session = session
        death_resolution = DeathResolutionHandler()
        self.night_handlers = night_handlers or default_night_handlers(death_resolution)
        self.mayor_handler = MayorElectionHandler()
        self.accusation_handler = AccusationHandler(death_resolution)
        self.voting_handler = VotingHandler(self.accusation_handler, death_resolution)
        self.hunter_handler = HunterHandler(death_resolution)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def state(self) -> "GameState":
        return self.session.state

    @property
    def phase(self) -> GamePhase:
        return self.session.phase

    def context(self) -> HandlerContext:
        return HandlerContext(
            state=self.session.state,
            config=self.session.event_config,
            accused=list(self.session.accused),
        )

    def _set_phase(self, phase: GamePhase) -> None:
        if phase != self.session.phase:
            logger.debug("Phase %s -> %s", self.session.phase.value, phase.value)
        self.session.phase = phase

    def _wrong_phase(self, operation: str, *expected: GamePhase) -> HandlerResult:
        names = ", ".join(phase.value for phase in expected)
        return HandlerResult.rejected(f"Cannot {operation} during {self.phase.value} (expected {names}).")

    def _finish(self, result: HandlerResult, step: Optional[str] = None) -> HandlerResult:
        """Record an accepted result to the log and the announcement queue."""
        if result.accepted:
            self.session.record_result(result, step=step)
        return result

    # ------------------------------------------------------------------
    # Night
    # ------------------------------------------------------------------

    def start_night(self) -> HandlerResult:
        """Build tonight's steps, evaluate events and show the first step."""
        session = self.session
        state = self.state
        if self.phase == GamePhase.GAME_OVER:
            return HandlerResult.skipped("The game is over.")
        if self.phase not in (GamePhase.SETUP, GamePhase.DUSK, GamePhase.DAY_RESOLUTION):
            return self._wrong_phase("start the night", GamePhase.SETUP, GamePhase.DUSK)

        upcoming = state.night_counter + 1
        trackers = state.trackers
        if trackers.doctor_pending_night is not None:
            stale = trackers.doctor_pending_night < upcoming
            empty = trackers.doctor_pending_night == upcoming and not doctor_available_targets(state)
            if stale or empty:
                trackers.clear_doctor_pending()

        steps = build_night_sequence(state, upcoming)
        if not steps:
            return self._finish(HandlerResult.skipped("No night actions are possible."))

        state.current_night_victims = []
        state.silenced = None
        trackers.reset_for_new_night()

        report = session.events.trigger_night_events(state.night_counter)

        session.timers.cancel_all()
        state.night_counter = upcoming
        session.night_steps = steps
        session.night_index = 0
        session.accused = []
        self._set_phase(GamePhase.NIGHT)
        session.capture_checkpoint(f"Start Night {upcoming}")
        session.night_history.clear()

        result = HandlerResult(messages=[f"Night {upcoming} begins."])
        for modifier in report.expired:
            result.messages.append(f"{modifier.label} has ended.")
        for item in report.logs:
            result.logs.append(item)
        result.messages.extend(report.messages)
        result.messages.extend(report.narrator_notes)
        self._finish(result)
        logger.info("Night %d with steps %s", upcoming, [step.value for step in steps])

        self._settle_step()
        return result

    def current_step(self) -> Optional[NightStepId]:
        session = self.session
        if self.phase != GamePhase.NIGHT or session.night_index >= len(session.night_steps):
            return None
        return session.night_steps[session.night_index]

    def current_step_definition(self) -> Optional[NightStepDefinition]:
        step = self.current_step()
        return get_step_definition(step) if step else None

    def current_choice(self) -> Optional[ChoiceSpec]:
        """What the narrator has to select in the current phase, if anything."""
        context = self.context()
        if self.phase == GamePhase.NIGHT:
            step = self.current_step()
            return self.night_handlers[step].build_choice_spec(context) if step else None
        if self.phase == GamePhase.MAYOR_ELECTION:
            return self.mayor_handler.build_choice_spec(context)
        if self.phase == GamePhase.DAY_ACCUSATION:
            return self.accusation_handler.build_choice_spec(context)
        if self.phase == GamePhase.DAY_VOTE:
            return self.voting_handler.build_choice_spec(context)
        if self.phase == GamePhase.HUNTER_SHOT and self.session.hunter_queue:
            return self.hunter_handler.build_choice_spec(context, self.session.hunter_queue[0])
        return None

    def current_prompt(self) -> str:
        """Narrator script line for the current phase."""
        definition = self.current_step_definition()
        if definition is not None:
            return definition.prompt
        choice = self.current_choice()
        return choice.prompt if choice else self.phase.value

    def confirm_night_step(self, selection: Optional[str]) -> HandlerResult:
        """Apply the current step's selection and move to the next step.

        A REJECTED result leaves the step and all state untouched.
        """
        step = self.current_step()
        if step is None:
            return self._wrong_phase("confirm a night step", GamePhase.NIGHT)

        result = self.night_handlers[step](self.context(), selection)
        if not result.accepted:
            return result

        self._finish(result, step=step.value)
        self.session.night_index += 1
        self._settle_step()
        return result

    def step_back(self) -> bool:
        """Return to the previous night step, undoing everything since."""
        session = self.session
        if self.phase != GamePhase.NIGHT:
            return False
        entry = session.night_history.step_back()
        if entry is None:
            return False
        session.timers.cancel_all()
        with session.checkpoints.restoring_state():
            session.apply_snapshot(entry.state)
        session.undo.clear()
        session.log_action(ActionType.UNDO, "Night step back", entry.step, step=entry.step)
        return True

    def _settle_step(self) -> None:
        """Skip steps without a living actor; finish the night past the end."""
        session = self.session
        while session.night_index < len(session.night_steps):
            step = session.night_steps[session.night_index]
            if step_has_living_actor(get_step_definition(step), self.state):
                session.capture_night_step()
                return
            session.log_action(ActionType.NIGHT, "Step skipped", f"{step.value}: nobody left to act", step=step.value)
            session.night_index += 1
        self._finish_night()

    def _finish_night(self) -> None:
        session = self.session
        state = self.state
        trackers = state.trackers
        trackers.blood_moon_active = False

        victims = list(dict.fromkeys(state.current_night_victims))
        if len(victims) >= 2:
            trackers.doctor_pending_targets = victims
            trackers.doctor_pending_night = state.night_counter + 1

        session.night_history.clear()
        self._set_phase(GamePhase.DAWN)
        session.log_action(ActionType.NIGHT, "Night ends", format_seats(state, victims))
        session.timers.cancel_all()
        session.timers.schedule(self.start_day, session.settings.transition_delay_ms, "Prepare day")

    # ------------------------------------------------------------------
    # Day
    # ------------------------------------------------------------------

    def start_day(self) -> HandlerResult:
        """Morning: phoenix revival, peace counter, win check, then day flow."""
        session = self.session
        state = self.state
        trackers = state.trackers
        if self.phase == GamePhase.GAME_OVER:
            return HandlerResult.skipped("The game is over.")
        if self.phase != GamePhase.DAWN:
            return self._wrong_phase("start the day", GamePhase.DAWN)

        state.day_count += 1
        session.accused = []
        result = HandlerResult(messages=[f"Day {state.day_count} begins."])

        if session.events.scheduler.has_queued(CardId.PHOENIX_PULSE.value):
            victims = list(state.current_night_victims)
            revived = [seat for seat in victims if seat in state.dead]
            for seat in victims:
                state.revive(seat)
                if seat in trackers.hunter_died_last_night:
                    trackers.hunter_died_last_night.remove(seat)
            if victims:
                state.current_night_victims = []
            session.events.scheduler.complete_queued_effect(
                CardId.PHOENIX_PULSE.value,
                {"revived": revived, "night": state.night_counter},
            )
            if revived:
                names = format_seats(state, revived)
                result.messages.append(f"Phoenix Pulse: {names} return to life!")
                session.log_action(ActionType.EVENT, "Phoenix Pulse", f"Revived: {names}")

        if state.current_night_victims:
            result.messages.append(f"Died last night: {format_seats(state, state.current_night_victims)}.")
            state.peace_days = 0
        else:
            result.messages.append("Nobody died last night.")
            state.peace_days += 1

        self._finish(result)
        if self.check_game_over():
            return result

        session.timers.cancel_all()
        next_phase = GamePhase.DAY_ACCUSATION
        if state.day_count == 1 and state.mayor is None:
            next_phase = GamePhase.MAYOR_ELECTION

        hunters = [seat for seat in trackers.hunter_died_last_night if seat in state.dead]
        trackers.hunter_died_last_night = []
        if hunters and not trackers.hunter_shot_used:
            self._enter_hunter_shot(hunters[:1], resume=next_phase)
        else:
            self._set_phase(next_phase)
        session.capture_checkpoint(f"Start Day {state.day_count}")
        return result

    def _enter_hunter_shot(self, hunters: list[int], resume: GamePhase) -> None:
        session = self.session
        session.hunter_queue = list(hunters)
        session.resume_phase = resume
        self._set_phase(GamePhase.HUNTER_SHOT)
        session.announce(f"{format_seats(self.state, hunters)} the hunter may take one last shot.")

    def hunter_shot(self, selection: Optional[str]) -> HandlerResult:
        """Resolve the pending hunter's revenge shot, then resume the day."""
        session = self.session
        if self.phase != GamePhase.HUNTER_SHOT or not session.hunter_queue:
            return self._wrong_phase("resolve a hunter shot", GamePhase.HUNTER_SHOT)

        result = self.hunter_handler(self.context(), selection, session.hunter_queue[0])
        if not result.accepted:
            return result

        session.hunter_queue.pop(0)
        self._finish(result)
        if self.check_game_over():
            return result

        resume = session.resume_phase or GamePhase.DAY_ACCUSATION
        session.resume_phase = None
        if resume == GamePhase.DAY_RESOLUTION:
            self._conclude_day()
        else:
            self._set_phase(resume)
        return result

    def elect_mayor(self, selection: Optional[str]) -> HandlerResult:
        if self.phase != GamePhase.MAYOR_ELECTION:
            return self._wrong_phase("elect a mayor", GamePhase.MAYOR_ELECTION)
        result = self.mayor_handler(self.context(), selection)
        if result.accepted:
            self._finish(result)
            self._set_phase(GamePhase.DAY_ACCUSATION)
        return result

    def accuse(self, selection: Optional[str]) -> HandlerResult:
        """Name today's accused; an empty selection makes a peaceful day."""
        session = self.session
        if self.phase != GamePhase.DAY_ACCUSATION:
            return self._wrong_phase("accuse", GamePhase.DAY_ACCUSATION)

        result = self.accusation_handler(self.context(), selection)
        if not result.accepted:
            return result
        self._finish(result)

        if result.eliminated:
            session.accused = []
            self._after_day_elimination(result)
        elif result.accused:
            session.accused = list(result.accused)
            self._set_phase(GamePhase.DAY_VOTE)
        else:
            self._conclude_day()
        return result

    def vote(self, selection: Optional[str]) -> HandlerResult:
        """Count votes (``seat:count,...``) and resolve the lynching."""
        session = self.session
        if self.phase != GamePhase.DAY_VOTE:
            return self._wrong_phase("vote", GamePhase.DAY_VOTE)

        result = self.voting_handler(self.context(), selection)
        if not result.accepted:
            return result
        self._finish(result)
        session.accused = []
        self._after_day_elimination(result)
        return result

    def _after_day_elimination(self, result: HandlerResult) -> None:
        if result.deaths and self.check_game_over():
            return
        hunters = [seat for seat in result.pending_hunters if seat in self.state.dead]
        if hunters and not self.state.trackers.hunter_shot_used:
            self._enter_hunter_shot(hunters[:1], resume=GamePhase.DAY_RESOLUTION)
            return
        self._conclude_day()

    def _conclude_day(self) -> None:
        session = self.session
        self._set_phase(GamePhase.DAY_RESOLUTION)
        session.timers.cancel_all()
        session.timers.schedule(self.end_day, session.settings.day_end_delay_ms, "Day ends")

    def end_day(self) -> HandlerResult:
        """Clear the night's victims and schedule the next night."""
        session = self.session
        if self.phase == GamePhase.GAME_OVER:
            return HandlerResult.skipped("The game is over.")
        if self.phase not in (GamePhase.DAY_RESOLUTION, GamePhase.DAY_ACCUSATION, GamePhase.DAY_VOTE):
            return self._wrong_phase("end the day", GamePhase.DAY_RESOLUTION)

        self.state.current_night_victims = []
        session.accused = []
        self._set_phase(GamePhase.DUSK)
        session.timers.cancel_all()
        session.timers.schedule(self.start_night, session.settings.transition_delay_ms, "Start next night")
        return self._finish(HandlerResult(messages=["The day ends. Night falls soon."]))

    # ------------------------------------------------------------------
    # Victory
    # ------------------------------------------------------------------

    def check_game_over(self) -> bool:
        """Evaluate win conditions; on a win, stop timers and enter GAME_OVER."""
        state = self.state
        if state.winner is not None:
            return True
        over, winner = state.is_game_over()
        if not over:
            return False

        session = self.session
        state.winner = winner
        session.timers.cancel_all()
        self._set_phase(GamePhase.GAME_OVER)
        session.log_action(ActionType.VICTORY, "Game over", winner.value)
        session.announce(f"Game over: {winner.value.title()} win!")
        logger.info("Game over, winner %s", winner.value)
        return True

    def reschedule_transition(self) -> bool:
        """Re-arm the timer a waiting phase expects (after it was cancelled)."""
        session = self.session
        settings = session.settings
        session.timers.cancel_all()
        if self.phase == GamePhase.DAWN:
            session.timers.schedule(self.start_day, settings.transition_delay_ms, "Prepare day")
        elif self.phase == GamePhase.DAY_RESOLUTION:
            session.timers.schedule(self.end_day, settings.day_end_delay_ms, "Day ends")
        elif self.phase == GamePhase.DUSK:
            session.timers.schedule(self.start_night, settings.transition_delay_ms, "Start next night")
        else:
            return False
        return True

    def dispatch(self, selection: Optional[str]) -> HandlerResult:
        """Route a selection to whatever the current phase expects."""
        if self.phase == GamePhase.NIGHT:
            return self.confirm_night_step(selection)
        if self.phase == GamePhase.HUNTER_SHOT:
            return self.hunter_shot(selection)
        if self.phase == GamePhase.MAYOR_ELECTION:
            return self.elect_mayor(selection)
        if self.phase == GamePhase.DAY_ACCUSATION:
            return self.accuse(selection)
        if self.phase == GamePhase.DAY_VOTE:
            return self.vote(selection)
        return HandlerResult(status=StepStatus.SKIPPED, hint=f"Nothing to confirm during {self.phase.value}.")
