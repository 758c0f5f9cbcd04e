"""Session documents and timeline replay.

A session document bundles the composite snapshot with the action log,
checkpoints and timer history of one game. Replay maps an action log
sequence to the nearest checkpoint at or before it and restores that
snapshot, so replay granularity equals checkpoint density.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from narrator.events.game_events import ActionType
from narrator.replay.checkpoints import Checkpoint, find_checkpoint_for_sequence

if TYPE_CHECKING:
    from narrator.engine.game_session import GameSession

logger = logging.getLogger(__name__)

SESSION_VERSION = 1


def build_session_document(session: "GameSession") -> dict[str, Any]:
    """Everything needed to reload or replay ``session``, JSON-compatible."""
    state = session.state
    actions = [entry.model_dump(mode="json") for entry in reversed(session.action_log.entries())]
    checkpoints = [checkpoint.model_dump(mode="json") for checkpoint in session.checkpoints.all()]

    duration_ms = None
    if len(actions) > 1:
        duration = actions[-1]["created_at"] - actions[0]["created_at"]
        if duration >= 0:
            duration_ms = duration

    timestamp = session.clock()
    return {
        "version": SESSION_VERSION,
        "timestamp": timestamp,
        "players": list(state.players),
        "roles": [
            {"name": role, "quantity": count}
            for role, count in sorted(state.role_counts(living_only=False).items())
        ],
        "event_config": session.event_config.model_dump(mode="json"),
        "snapshot": session.capture_snapshot(),
        "actions": actions,  # oldest first
        "checkpoints": checkpoints,
        "timers": [event.model_dump(mode="json") for event in session.timers.history()],
        "metadata": {
            "player_count": len(state.players),
            "day_count": state.day_count,
            "night_count": state.night_counter,
            "action_count": len(actions),
            "checkpoint_count": len(checkpoints),
            "game_duration_ms": duration_ms,
            "winner": state.winner.value if state.winner else None,
            "started_at": session.started_at,
            "saved_at": timestamp,
        },
    }


def restore_session_document(session: "GameSession", document: Any) -> bool:
    """Load a saved document into ``session``.

    A malformed document is logged and ignored; the live session is left
    untouched in that case.
    """
    if not isinstance(document, dict) or not isinstance(document.get("snapshot"), dict):
        logger.warning("Ignoring session document without a snapshot")
        return False

    previous = session.capture_snapshot()
    session.timers.cancel_all()
    try:
        with session.checkpoints.restoring_state():
            session.apply_snapshot(document["snapshot"])
            session.action_log.load(document.get("actions") or [])
            session.checkpoints.load(document.get("checkpoints") or [])
    except (ValidationError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Session document could not be restored: %s", exc)
        with session.checkpoints.restoring_state():
            session.apply_snapshot(previous)
        return False

    session.night_history.clear()
    session.undo.clear()
    session.started_at = (document.get("metadata") or {}).get("started_at")
    session.capture_night_step()
    session.log_action(
        ActionType.INFO,
        "Session loaded",
        f"{len(session.state.players)} players",
        metadata={"session_timestamp": document.get("timestamp")},
    )
    return True


def action_label_for(session: "GameSession", sequence: int) -> str:
    for entry in session.action_log.entries():
        if entry.sequence == sequence:
            return entry.label
    return "Action"


def replay_to_sequence(
    session: "GameSession",
    sequence: int,
    checkpoints: Optional[list[Checkpoint]] = None,
) -> bool:
    """Restore the checkpoint nearest at or before action ``sequence``.

    ``checkpoints`` defaults to the session's own buffer; pass the
    checkpoints of a saved document to replay another game's timeline.
    Timers are cancelled and their history reset before the snapshot is
    applied; undo/redo history is dropped and a ``replay`` entry is logged.
    """
    if checkpoints is None:
        checkpoint = session.checkpoints.find_for_sequence(sequence)
    else:
        checkpoint = find_checkpoint_for_sequence(checkpoints, sequence)
    if checkpoint is None or not checkpoint.state:
        logger.info("No snapshot available for sequence %d", sequence)
        return False

    label = action_label_for(session, sequence)
    session.timers.cancel_all()
    session.timers.reset_history()
    with session.checkpoints.restoring_state():
        session.night_history.clear()
        session.apply_snapshot(checkpoint.state)
        session.capture_night_step()
    session.undo.clear()

    session.log_action(
        ActionType.REPLAY,
        f"Replay loaded: {label}",
        f"Snapshot: {checkpoint.label}",
        metadata={
            "source": "replay",
            "sequence": sequence,
            "checkpoint_id": checkpoint.id,
        },
    )
    logger.info("Replayed to sequence %d from %s", sequence, checkpoint.label)
    return True


def replay_saved_session(session: "GameSession", timestamp: int, sequence: int) -> bool:
    """Replay a stored session's timeline into ``session``."""
    document = session.sessions.get(timestamp)
    if document is None:
        return False
    try:
        checkpoints = [Checkpoint.model_validate(raw) for raw in document.get("checkpoints") or []]
    except ValidationError as exc:
        logger.warning("Stored session %d has corrupt checkpoints: %s", timestamp, exc)
        return False
    return replay_to_sequence(session, sequence, checkpoints=checkpoints)
