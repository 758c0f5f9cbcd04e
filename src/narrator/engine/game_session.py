"""GameSession - the explicit context object for one narrated game.

A session owns the game state plus every collaborator that acts on it:
event engine, action log, checkpoints, night-step history, undo stacks,
timers and the session store. Nothing lives at module level, so several
sessions can coexist (one per table, or one per test).

Snapshots are plain JSON-compatible dicts combining the game state, the
controller position and the event engine document; checkpoints, night-step
history and replay all apply the same composite snapshot.
"""

import logging
import random
from typing import Any, Callable, Optional

from narrator.clock import now_ms
from narrator.config import EventConfig, Settings
from narrator.engine.game_state import GameState
from narrator.engine.phase_controller import PhaseController
from narrator.events.action_log import ActionLog, ActionLogEntry
from narrator.events.game_events import ActionType, DeathCause, GamePhase, LogPhase
from narrator.handlers.base import HandlerResult, format_seats
from narrator.models.night_steps import NightStepId
from narrator.models.player import Job, Role, RoleConfig, SetupResult, assign_roles
from narrator.replay import timeline
from narrator.replay.checkpoints import CheckpointStore, NightStepHistory
from narrator.replay.timers import PhaseTimerManager
from narrator.replay.undo import (
    KillCommand,
    PotionResetCommand,
    ReviveCommand,
    RewindNightCommand,
    RoleChangeCommand,
    UndoableAction,
    UndoManager,
    apply_command,
)
from narrator.scheduler.cards import BLOOD_MOON_PITY_KEY
from narrator.scheduler.engine import EventEngine
from narrator.storage.base import InMemoryStorage, JsonFileStorage, Storage, get_number, set_number
from narrator.storage.sessions import SessionStore

logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> Storage:
    """JSON file storage when a path is configured, in-memory otherwise."""
    if settings.storage_path:
        return JsonFileStorage(settings.storage_path)
    return InMemoryStorage()


def log_phase_for(phase: GamePhase) -> LogPhase:
    if phase == GamePhase.SETUP:
        return LogPhase.SETUP
    if phase in (GamePhase.NIGHT, GamePhase.DAWN):
        return LogPhase.NIGHT
    return LogPhase.DAY


class GameSession:
    """One narrated game and its replay machinery."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[Storage] = None,
        event_config: Optional[EventConfig] = None,
        rng: Optional[random.Random] = None,
        timers: Optional[PhaseTimerManager] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings or Settings()
        self.storage = storage if storage is not None else create_storage(self.settings)
        self.event_config = event_config or EventConfig()
        self.rng = rng or random.Random()
        self.clock = clock

        self.state = GameState()
        self.phase = GamePhase.SETUP
        self.night_steps: list[NightStepId] = []
        self.night_index = 0
        self.accused: list[int] = []
        self.hunter_queue: list[int] = []  # hunters waiting to shoot
        self.resume_phase: Optional[GamePhase] = None  # phase after the hunter shot
        self.started_at: Optional[int] = None
        self.announcements: list[str] = []

        self.action_log = ActionLog(limit=self.settings.action_log_limit, clock=clock)
        self.checkpoints = CheckpointStore(limit=self.settings.checkpoint_limit, clock=clock)
        self.night_history = NightStepHistory()
        self.undo = UndoManager()
        self.timers = timers or PhaseTimerManager(history_limit=self.settings.timer_history_limit)
        self.sessions = SessionStore(self.storage, limit=self.settings.session_limit)
        self.events = EventEngine(
            storage=self.storage,
            config=self.event_config,
            get_trackers=lambda: self.state.trackers,
            rng=self.rng,
            history_limit=self.settings.history_limit,
            clock=clock,
        )
        self.controller = PhaseController(self)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def start_game(
        self,
        players: list[str],
        setup: Optional[SetupResult] = None,
        role_config: Optional[list[RoleConfig]] = None,
    ) -> GameState:
        """Assign roles (unless ``setup`` is given) and reset every component."""
        if setup is None:
            setup = assign_roles(
                len(players),
                self.rng,
                role_config=role_config,
                job_chances={
                    Job.BODYGUARD: self.settings.bodyguard_job_chance,
                    Job.DOCTOR: self.settings.doctor_job_chance,
                },
            )

        self.timers.cancel_all()
        self.timers.reset_history()
        self.action_log.clear()
        self.checkpoints.clear()
        self.night_history.clear()
        self.undo.clear()
        self.announcements.clear()
        self.events.set_config(self.event_config)
        self.events.reset()
        set_number(self.storage, BLOOD_MOON_PITY_KEY, 0)

        self.state = GameState.new(players, setup)
        self.phase = GamePhase.SETUP
        self.night_steps = []
        self.night_index = 0
        self.accused = []
        self.hunter_queue = []
        self.resume_phase = None
        self.started_at = self.clock()

        counts = ", ".join(f"{role}: {count}" for role, count in sorted(self.state.role_counts().items()))
        self.log_action(ActionType.SETUP, "Roles assigned", counts)
        self.capture_checkpoint("Game start")
        logger.info("New game with %d players", len(players))
        return self.state

    # ------------------------------------------------------------------
    # Action log
    # ------------------------------------------------------------------

    def log_action(
        self,
        type: ActionType | str,
        label: str,
        detail: str = "",
        step: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActionLogEntry:
        """Append a log entry stamped with the current phase and counters."""
        return self.action_log.log(
            type,
            label,
            detail,
            phase=log_phase_for(self.phase),
            step=step,
            metadata={
                "day_count": self.state.day_count,
                "night_counter": self.state.night_counter,
                "mayor": self.state.mayor,
                "player_count": len(self.state.players),
                **(metadata or {}),
            },
        )

    def record_result(self, result: HandlerResult, step: Optional[str] = None) -> None:
        """Log a handler's items and queue its messages for display."""
        for item in result.logs:
            self.log_action(item.type, item.label, item.detail, step=step)
        self.announce(*result.messages)

    def announce(self, *messages: str) -> None:
        self.announcements.extend(message for message in messages if message)

    def drain_announcements(self) -> list[str]:
        """Messages produced since the last drain (timer-driven ones included)."""
        messages, self.announcements = self.announcements, []
        return messages

    # ------------------------------------------------------------------
    # Snapshots and checkpoints
    # ------------------------------------------------------------------

    def capture_snapshot(self) -> dict[str, Any]:
        """Composite, JSON-compatible snapshot of everything replayable."""
        return {
            "state": self.state.snapshot(),
            "phase": self.phase.value,
            "night_steps": [step.value for step in self.night_steps],
            "night_index": self.night_index,
            "accused": list(self.accused),
            "hunter_queue": list(self.hunter_queue),
            "resume_phase": self.resume_phase.value if self.resume_phase else None,
            "event_engine": self.events.export_state(),
            "blood_moon_pity": get_number(self.storage, BLOOD_MOON_PITY_KEY),
        }

    def apply_snapshot(self, snapshot: dict[str, Any]) -> None:
        """Replace the live game with a snapshot from ``capture_snapshot``."""
        self.state = GameState.from_snapshot(snapshot["state"])
        self.phase = GamePhase(snapshot.get("phase", GamePhase.SETUP.value))
        self.night_steps = [NightStepId(step) for step in snapshot.get("night_steps", [])]
        self.night_index = int(snapshot.get("night_index", 0))
        self.accused = list(snapshot.get("accused", []))
        self.hunter_queue = list(snapshot.get("hunter_queue", []))
        resume = snapshot.get("resume_phase")
        self.resume_phase = GamePhase(resume) if resume else None
        # Tracker flags come from the state snapshot itself
        self.events.import_state(snapshot.get("event_engine"), rehydrate=False)
        self.events.persist()
        set_number(self.storage, BLOOD_MOON_PITY_KEY, snapshot.get("blood_moon_pity", 0))

    def capture_checkpoint(self, label: str) -> None:
        self.checkpoints.capture(label, self.capture_snapshot(), self.action_log.sequence)

    def restore_last_checkpoint(self) -> bool:
        """Roll back to the most recent checkpoint (which is consumed)."""
        checkpoint = self.checkpoints.pop_last()
        if checkpoint is None:
            return False
        with self.checkpoints.restoring_state():
            self.timers.cancel_all()
            self.night_history.clear()
            self.apply_snapshot(checkpoint.state)
            if self.phase == GamePhase.NIGHT:
                self.capture_night_step()
        self.undo.clear()
        self.log_action(ActionType.CHECKPOINT, "Checkpoint restored", checkpoint.label)
        logger.info("Restored checkpoint %s", checkpoint.label)
        return True

    def capture_night_step(self) -> None:
        """Remember the state on entering the current night step."""
        if 0 <= self.night_index < len(self.night_steps):
            step = self.night_steps[self.night_index]
            self.night_history.capture(self.night_index, step.value, self.capture_snapshot())

    # ------------------------------------------------------------------
    # Admin edits (undoable)
    # ------------------------------------------------------------------

    def _record_admin(self, action: UndoableAction, type: ActionType = ActionType.ADMIN) -> HandlerResult:
        action.phase_before = self.phase
        action.winner_before = self.state.winner
        self.undo.record(action)
        self.log_action(type, action.label, action.detail)
        result = HandlerResult(messages=[f"{action.label}: {action.detail}" if action.detail else action.label])
        self.announce(*result.messages)
        return result

    def admin_kill(self, seat: int) -> HandlerResult:
        """Kill a player (and their lovers) outside the normal flow."""
        if not self.state.is_alive(seat):
            return HandlerResult.rejected(f"{self.state.name_of(seat)} (#{seat}) is not alive.")
        records = self.state.kill_with_lovers(seat, DeathCause.ADMIN)
        seats = [record.seat for record in records]
        result = self._record_admin(UndoableAction(
            label="Admin kill",
            detail=format_seats(self.state, seats),
            command=KillCommand(seats=seats),
        ))
        result.deaths = records
        self.controller.check_game_over()
        return result

    def admin_revive(self, seat: int) -> HandlerResult:
        if not self.state.is_valid_seat(seat) or self.state.is_alive(seat):
            return HandlerResult.rejected(f"{self.state.name_of(seat)} (#{seat}) is not dead.")
        self.state.revive(seat)
        return self._record_admin(UndoableAction(
            label="Admin revive",
            detail=self.state.name_of(seat),
            command=ReviveCommand(seats=[seat]),
        ))

    def admin_change_role(self, seat: int, role: Role) -> HandlerResult:
        if not self.state.is_valid_seat(seat):
            return HandlerResult.rejected(f"Seat {seat} does not exist.")
        try:
            role = Role(role)
        except ValueError:
            return HandlerResult.rejected(f"Unknown role {role!r}.")
        old_role = self.state.roles[seat]
        if old_role == role:
            return HandlerResult.skipped(f"{self.state.name_of(seat)} already is {role.value}.")
        command = RoleChangeCommand(seat=seat, old_role=old_role, new_role=role)
        apply_command(self.state, command)
        return self._record_admin(UndoableAction(
            label="Admin role change",
            detail=f"{self.state.name_of(seat)}: {old_role.value} -> {role.value}",
            command=command,
        ))

    def admin_reset_witch_potions(self) -> HandlerResult:
        """Macro: refill both potions. A no-op when both are already full."""
        trackers = self.state.trackers
        if trackers.witch_heal_remaining == 1 and trackers.witch_poison_remaining == 1:
            return HandlerResult.skipped("The witch already has both potions.")
        command = PotionResetCommand(
            old_heal=trackers.witch_heal_remaining,
            old_poison=trackers.witch_poison_remaining,
        )
        apply_command(self.state, command)
        return self._record_admin(
            UndoableAction(label="Witch potions reset", command=command),
            type=ActionType.MACRO,
        )

    def admin_rewind_night(self) -> HandlerResult:
        """Macro: revive everyone who died tonight and clear the victim list."""
        victims = list(self.state.current_night_victims)
        if not victims:
            return HandlerResult.skipped("There are no night victims to bring back.")
        command = RewindNightCommand(victims=victims)
        apply_command(self.state, command)
        return self._record_admin(
            UndoableAction(label="Night rewound", detail=format_seats(self.state, victims), command=command),
            type=ActionType.MACRO,
        )

    def undo_last(self) -> HandlerResult:
        action = self.undo.undo(self.state)
        if action is None:
            return HandlerResult.skipped("Nothing to undo.")
        self.log_action(ActionType.UNDO, f"Undo: {action.label}", action.detail)
        self._reopen_game(action)
        self.controller.check_game_over()
        return HandlerResult(messages=[f"Undone: {action.label}"])

    def _reopen_game(self, action: UndoableAction) -> None:
        """Put back the phase and winner an undone game-ending edit replaced."""
        if self.phase != GamePhase.GAME_OVER or action.phase_before in (None, GamePhase.GAME_OVER):
            return
        self.state.winner = action.winner_before
        self.phase = action.phase_before
        self.controller.reschedule_transition()
        self.log_action(ActionType.INFO, "Game reopened", self.phase.value)
        logger.info("Undo reopened the game in %s", self.phase.value)

    def redo_last(self) -> HandlerResult:
        action = self.undo.redo(self.state)
        if action is None:
            return HandlerResult.skipped("Nothing to redo.")
        self.log_action(ActionType.REDO, f"Redo: {action.label}", action.detail)
        self.controller.check_game_over()
        return HandlerResult(messages=[f"Redone: {action.label}"])

    def admin_cancel_modifier(self, modifier_id: str) -> HandlerResult:
        removed = self.events.scheduler.remove_modifier(modifier_id)
        if removed is None:
            return HandlerResult.skipped(f"No active modifier {modifier_id!r}.")
        self.log_action(ActionType.EVENT, "Modifier cancelled", removed.label)
        return HandlerResult(messages=[f"{removed.label} ended early."])

    def admin_trigger_event(self, card_id: str) -> HandlerResult:
        """Force an event card for the current (or upcoming) night."""
        night = self.state.night_counter if self.phase == GamePhase.NIGHT else self.state.night_counter + 1
        outcome = self.events.activate(card_id, night)
        if outcome is None:
            return HandlerResult.rejected(f"Unknown event {card_id!r}.")
        if outcome.skipped:
            return HandlerResult.skipped(outcome.reason or "skipped")
        if outcome.log is not None:
            self.log_action(outcome.log.type, outcome.log.label, outcome.log.detail)
        messages = [text for text in (outcome.message, outcome.narrator_note) if text]
        self.announce(*messages)
        return HandlerResult(messages=messages)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def pause_timers(self) -> HandlerResult:
        """Freeze the pending phase transition."""
        if not self.timers.pause():
            return HandlerResult.skipped("No running timers to pause.")
        self.log_action(ActionType.INFO, "Timers paused", f"{self.timers.pending()} pending")
        return HandlerResult(messages=["Timers paused."])

    def resume_timers(self) -> HandlerResult:
        if not self.timers.resume():
            return HandlerResult.skipped("Timers are not paused.")
        self.log_action(ActionType.INFO, "Timers resumed", f"{self.timers.pending()} pending")
        return HandlerResult(messages=["Timers resumed."])

    def timers_paused(self) -> bool:
        return self.timers.is_paused()

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def overview(self) -> dict[str, Any]:
        """Plain dashboard data: players, counts, events, timers."""
        state = self.state
        return {
            "phase": self.phase.value,
            "night": state.night_counter,
            "day": state.day_count,
            "living": [
                {"seat": seat, "name": state.name_of(seat), "role": state.roles[seat].value,
                 "jobs": [job.value for job in state.jobs[seat]]}
                for seat in state.living_seats()
            ],
            "dead": [state.name_of(seat) for seat in state.dead],
            "role_counts": state.role_counts(),
            "mayor": state.name_of(state.mayor) if state.mayor is not None else None,
            "lovers": [[state.name_of(a), state.name_of(b)] for a, b in state.lovers],
            "modifiers": [m.model_dump(mode="json") for m in self.events.scheduler.active_modifiers()],
            "queued": [q.model_dump(mode="json") for q in self.events.scheduler.queued_effects()],
            "timers": [timer.model_dump(mode="json") for timer in self.timers.list()],
            "winner": state.winner.value if state.winner else None,
            "can_undo": self.undo.can_undo(),
            "can_redo": self.undo.can_redo(),
        }

    # ------------------------------------------------------------------
    # Sessions and replay
    # ------------------------------------------------------------------

    def save_session(self) -> Optional[int]:
        """Persist the full session document; returns its timestamp."""
        return self.sessions.save(timeline.build_session_document(self))

    def load_session(self, document: dict[str, Any]) -> bool:
        return timeline.restore_session_document(self, document)

    def replay_to(self, sequence: int) -> bool:
        return timeline.replay_to_sequence(self, sequence)

    def finish_game(self) -> Optional[int]:
        """Save the session and stop every pending transition."""
        self.timers.cancel_all()
        winner = self.state.winner.value if self.state.winner else "no winner"
        self.log_action(ActionType.INFO, "Game finished", winner)
        timestamp = self.save_session()
        self.undo.clear()
        return timestamp

