"""NarratorGame - async driver that runs a session to the end.

The controller itself is synchronous and never waits. This driver asks a
Confirmation collaborator (stub, console or any UI) for each selection,
re-prompts with the handler's hint when a selection is rejected, and lets
timed transitions (dawn, dusk, day end) fire in between.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from narrator.engine.game_session import GameSession
from narrator.events.action_log import ActionLogEntry
from narrator.events.game_events import GamePhase, Winner
from narrator.exceptions import GameOverError, MaxRetriesExceededError
from narrator.handlers.base import HandlerResult
from narrator.models.player import RoleConfig, SetupResult
from narrator.ui.choices import ChoiceSpec

# Import validator for type hints
if TYPE_CHECKING:
    from narrator.engine.validator import GameValidator

logger = logging.getLogger(__name__)

# Maximum number of days before the driver gives up (prevents endless games)
MAX_GAME_DAYS = 30

# Phases that wait on a timer rather than on the narrator
WAITING_PHASES = (GamePhase.SETUP, GamePhase.DAWN, GamePhase.DAY_RESOLUTION, GamePhase.DUSK)


class Confirmation(Protocol):
    """The narrator (human or stub) who confirms each step.

    Implementations return a raw answer string; the handlers parse and
    validate it.
    """

    async def decide(
        self,
        prompt: str,
        hint: Optional[str] = None,
        choices: Optional[ChoiceSpec] = None,
    ) -> str:
        """Answer one prompt.

        Args:
            prompt: Narrator script line for the current step
            hint: Why the previous answer was rejected, if it was
            choices: What may be selected; None when the step only needs
                     an acknowledgement

        Returns:
            Raw answer string in the ChoiceSpec answer format
        """
        ...


class NarratorGame:
    """Runs nights and days on a GameSession until a side wins.

    Game Flow:
        1. Night N: every step of the night sequence is confirmed in order
        2. Dawn: timer, then day start (phoenix revival, peace counter)
        3. Day N: hunter shot, mayor election, accusation, vote, resolution
        4. Dusk: timer, then the next night
        5. ... until a victory condition is met or MAX_GAME_DAYS passes
    """

    def __init__(
        self,
        session: GameSession,
        confirmation: Confirmation,
        validator: Optional["GameValidator"] = None,
        max_retries: int = 3,
        max_days: int = MAX_GAME_DAYS,
        on_message: Optional[Callable[[str], Any]] = None,
        poll_interval: float = 0.05,
    ):
        """Initialize the driver.

        Args:
            session: The session to drive; started by ``run`` when players
                     are given, otherwise it must already be set up.
            confirmation: Who answers the prompts.
            validator: Optional validator for runtime rule checking.
                       Pass None or NoOpValidator for production (zero overhead).
            max_retries: Attempts per prompt before giving up on it.
            max_days: Day limit after which the game ends without a winner.
            on_message: Receives every announcement as it is produced.
            poll_interval: Seconds between timer checks on an event loop.
        """
        self.session = session
        self.confirmation = confirmation
        self._validator = validator
        self.max_retries = max_retries
        self.max_days = max_days
        self._on_message = on_message
        self._poll_interval = poll_interval
        self._last_phase: Optional[GamePhase] = None
        self.transcript: list[str] = []

    @property
    def controller(self):
        return self.session.controller

    async def run(
        self,
        players: Optional[list[str]] = None,
        setup: Optional[SetupResult] = None,
        role_config: Optional[list[RoleConfig]] = None,
    ) -> tuple[list[ActionLogEntry], Optional[Winner]]:
        """Play the game to the end.

        Returns:
            Tuple of (action log oldest first, winner). The winner is None
            when the day limit was reached.
        """
        session = self.session
        if players is not None:
            session.start_game(players, setup=setup, role_config=role_config)
        if not session.state.players:
            raise ValueError("The session has no players; pass players or call start_game first")

        if self._validator:
            await self._validator.on_game_start(session.state)

        try:
            while session.state.day_count <= self.max_days:
                await self._notify_phase()
                if session.phase == GamePhase.GAME_OVER:
                    break
                if session.phase in WAITING_PHASES:
                    if not await self._wait_for_transition():
                        logger.warning("Game stuck in %s, stopping", session.phase.value)
                        break
                    continue
                await self._confirm_current_step()
        except GameOverError:
            logger.debug("Transition requested after game over")
        finally:
            self._emit()

        winner = session.state.winner
        if winner is None:
            logger.info("No winner after %d days", session.state.day_count)

        if self._validator:
            await self._validator.on_game_over(winner, session.state)

        session.finish_game()
        return list(reversed(session.action_log.entries())), winner

    # ------------------------------------------------------------------
    # Confirmations
    # ------------------------------------------------------------------

    async def _confirm_current_step(self) -> HandlerResult:
        """Ask for the current selection, retrying with hints on rejection."""
        controller = self.controller
        prompt = controller.current_prompt()
        choices = controller.current_choice()
        step = self._step_label()

        hint = None
        for attempt in range(self.max_retries):
            self._emit()
            raw = await self.confirmation.decide(prompt, hint=hint, choices=choices)
            result = self._dispatch(raw)
            if result.accepted:
                await self._after_step(step, result)
                return result
            hint = result.hint
            logger.debug("Attempt %d for %s rejected: %s", attempt + 1, step, hint)

        if choices is not None and choices.allow_none:
            logger.warning("Skipping %s after %d invalid answers", step, self.max_retries)
            result = self._dispatch("")
            if result.accepted:
                await self._after_step(step, result)
                return result
        raise MaxRetriesExceededError(f"Failed after {self.max_retries} attempts. Last hint: {hint}")

    def _dispatch(self, selection: str) -> HandlerResult:
        if self.session.phase == GamePhase.GAME_OVER:
            raise GameOverError("The game is already over")
        return self.controller.dispatch(selection)

    def _step_label(self) -> str:
        step = self.controller.current_step()
        return step.value if step else self.session.phase.value

    async def _after_step(self, step: str, result: HandlerResult) -> None:
        self._emit()
        if self._validator:
            await self._validator.on_step_applied(step, self.session.state)
            if result.deaths or self.session.phase == GamePhase.GAME_OVER:
                over, winner = self.session.state.is_game_over()
                await self._validator.on_victory_check(self.session.state, over, winner)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _wait_for_transition(self) -> bool:
        """Let the pending timer move the game on. Returns False when stuck."""
        session = self.session
        timers = session.timers
        phase = session.phase
        night = session.state.night_counter

        if phase == GamePhase.SETUP:
            session.controller.start_night()
        elif timers.manual:
            if session.timers_paused():
                session.resume_timers()
            if not timers.flush(max_fires=1):
                self._fire_transition_directly()
        else:
            while session.phase == phase and timers.pending():
                await asyncio.sleep(self._poll_interval)
            if session.phase == phase:
                self._fire_transition_directly()

        self._emit()
        return session.phase != phase or session.state.night_counter != night

    def _fire_transition_directly(self) -> None:
        """Run the transition a cancelled timer would have run."""
        controller = self.controller
        phase = self.session.phase
        if phase == GamePhase.DAWN:
            controller.start_day()
        elif phase == GamePhase.DAY_RESOLUTION:
            controller.end_day()
        elif phase == GamePhase.DUSK:
            controller.start_night()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    async def _notify_phase(self) -> None:
        phase = self.session.phase
        if phase == self._last_phase:
            return
        self._last_phase = phase
        if self._validator:
            await self._validator.on_phase_start(phase, self.session.state)

    def _emit(self) -> None:
        for message in self.session.drain_announcements():
            self.transcript.append(message)
            logger.debug("Narrator: %s", message)
            if self._on_message is not None:
                self._on_message(message)
