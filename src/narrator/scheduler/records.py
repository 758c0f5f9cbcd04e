"""Scheduler records and their normalizers.

Inputs arrive from event effects, admin tools and persisted documents, so
every record goes through a normalize-or-None function: usable input comes
back as a clean model, unusable input comes back as None and is dropped.
"""

import math
from typing import Any, Optional
from pydantic import BaseModel, Field, ValidationError

from narrator.clock import now_ms


class Modifier(BaseModel):
    """A temporary rule change, e.g. two werewolf victims tonight."""

    id: str
    label: str
    origin_card_id: str
    expires_after_night: Optional[int] = None  # None: removed explicitly only


class QueuedEffect(BaseModel):
    """An event outcome deferred to a later phase boundary."""

    id: str
    card_id: str
    label: str
    meta: dict[str, Any] = Field(default_factory=dict)
    night: Optional[int] = None
    scheduled_at: int


class HistoryEntry(BaseModel):
    """A resolved or attempted event outcome."""

    id: str
    card_id: str
    label: str
    night: Optional[int] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    narrator_note: Optional[str] = None
    script_step: Optional[dict[str, Any]] = None
    payload: Optional[dict[str, Any]] = None
    recorded_at: int
    resolved_at: Optional[int] = None


class SchedulerState(BaseModel):
    """Plain snapshot of the scheduler."""

    active_modifiers: list[Modifier] = Field(default_factory=list)
    queued_effects: list[QueuedEffect] = Field(default_factory=list)
    history: list[HistoryEntry] = Field(default_factory=list)


def _as_dict(raw: Any) -> Optional[dict[str, Any]]:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, dict):
        return dict(raw)
    return None


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def coerce_night(value: Any) -> Optional[int]:
    """Coerce a night number to a finite int, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def normalize_modifier(raw: Any) -> Optional[Modifier]:
    """Normalize modifier input.

    id falls back to origin_card_id, origin_card_id falls back to id and the
    label falls back to the id. Input without any usable id yields None.
    """
    data = _as_dict(raw)
    if data is None:
        return None
    modifier_id = _text(data.get("id")) or _text(data.get("origin_card_id"))
    if not modifier_id:
        return None
    return Modifier(
        id=modifier_id,
        label=_text(data.get("label")) or modifier_id,
        origin_card_id=_text(data.get("origin_card_id")) or modifier_id,
        expires_after_night=coerce_night(data.get("expires_after_night")),
    )


def normalize_queue_entry(raw: Any, now: Optional[int] = None) -> Optional[QueuedEffect]:
    """Normalize a queued effect; a fresh id is derived from card id and time."""
    data = _as_dict(raw)
    if data is None:
        return None
    timestamp = now if now is not None else now_ms()
    card_id = _text(data.get("card_id")) or _text(data.get("id")) or "event"
    meta = data.get("meta")
    scheduled_at = data.get("scheduled_at")
    existing_id = _text(data.get("id"))
    # Persisted entries keep their id, fresh ones get "<card_id>-<ms>"
    if existing_id and isinstance(scheduled_at, int):
        entry_id = existing_id
    else:
        entry_id = f"{card_id}-{timestamp}"
        scheduled_at = timestamp
    return QueuedEffect(
        id=entry_id,
        card_id=card_id,
        label=_text(data.get("label")) or card_id,
        meta=dict(meta) if isinstance(meta, dict) else {},
        night=coerce_night(data.get("night")),
        scheduled_at=scheduled_at,
    )


def normalize_history_entry(raw: Any, now: Optional[int] = None) -> Optional[HistoryEntry]:
    """Normalize a history entry; entries without a card id are dropped."""
    data = _as_dict(raw)
    if data is None:
        return None
    card_id = _text(data.get("card_id"))
    if not card_id:
        return None
    timestamp = now if now is not None else now_ms()
    recorded_at = data.get("recorded_at")
    recorded_at = recorded_at if isinstance(recorded_at, int) else timestamp
    try:
        return HistoryEntry(
            id=_text(data.get("id")) or f"{card_id}-{recorded_at}",
            card_id=card_id,
            label=_text(data.get("label")) or card_id,
            night=coerce_night(data.get("night")),
            meta=data.get("meta") if isinstance(data.get("meta"), dict) else {},
            narrator_note=_text(data.get("narrator_note")) or None,
            script_step=data.get("script_step") if isinstance(data.get("script_step"), dict) else None,
            payload=data.get("payload") if isinstance(data.get("payload"), dict) else None,
            recorded_at=recorded_at,
            resolved_at=data.get("resolved_at") if isinstance(data.get("resolved_at"), int) else None,
        )
    except ValidationError:
        return None
