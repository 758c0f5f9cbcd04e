"""EventScheduler - active modifiers, queued effects and event history.

Pure state plus handler dispatch; it knows nothing about phases. Every
mutating call ends with the ``notify`` callback supplied by the owner
(persistence, display refresh) unless ``silent`` is requested.
"""

import logging
from collections import deque
from typing import Any, Callable, Optional

from narrator.clock import now_ms
from narrator.scheduler.handlers import HandlerRegistry
from narrator.scheduler.records import (
    HistoryEntry,
    Modifier,
    QueuedEffect,
    SchedulerState,
    normalize_history_entry,
    normalize_modifier,
    normalize_queue_entry,
)

logger = logging.getLogger(__name__)


class EventScheduler:
    """Holds transient rule modifiers and deferred effects."""

    def __init__(
        self,
        handlers: Optional[HandlerRegistry] = None,
        notify: Optional[Callable[[], None]] = None,
        history_limit: int = 25,
        clock: Callable[[], int] = now_ms,
    ):
        self._handlers = handlers or HandlerRegistry()
        self._notify_callback = notify
        self._clock = clock
        self._modifiers: list[Modifier] = []
        self._queue: list[QueuedEffect] = []
        # Newest first
        self._history: deque[HistoryEntry] = deque(maxlen=history_limit)

    @property
    def handlers(self) -> HandlerRegistry:
        return self._handlers

    def _notify(self, silent: bool = False) -> None:
        if not silent and self._notify_callback is not None:
            self._notify_callback()

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def add_modifier(self, modifier: Any) -> Optional[Modifier]:
        """Add or replace a modifier (identity is ``id``).

        Returns the normalized modifier, or None when the input is unusable.
        """
        normalized = normalize_modifier(modifier)
        if normalized is None:
            logger.debug("Dropping unusable modifier %r", modifier)
            return None
        self._modifiers = [m for m in self._modifiers if m.id != normalized.id]
        self._modifiers.append(normalized)
        self._handlers.modifier_handler(normalized.origin_card_id, normalized.id).apply(normalized)
        self._notify()
        return normalized.model_copy()

    def clear_expired_modifiers(self, current_night: int) -> list[Modifier]:
        """Remove modifiers whose expiry night lies before ``current_night``."""
        expired = [
            m for m in self._modifiers
            if m.expires_after_night is not None and current_night > m.expires_after_night
        ]
        if not expired:
            return []
        for modifier in expired:
            self._handlers.modifier_handler(modifier.origin_card_id, modifier.id).expire(modifier)
        expired_ids = {m.id for m in expired}
        self._modifiers = [m for m in self._modifiers if m.id not in expired_ids]
        logger.debug("Night %d expired modifiers %s", current_night, sorted(expired_ids))
        self._notify()
        return [m.model_copy() for m in expired]

    def remove_modifier(self, modifier_id: str) -> Optional[Modifier]:
        """Explicitly remove a modifier, running its expire handler."""
        for modifier in self._modifiers:
            if modifier.id == modifier_id:
                self._modifiers.remove(modifier)
                self._handlers.modifier_handler(modifier.origin_card_id, modifier.id).expire(modifier)
                self._notify()
                return modifier.model_copy()
        return None

    def has_modifier(self, modifier_id: str) -> bool:
        return any(m.id == modifier_id for m in self._modifiers)

    def active_modifiers(self) -> list[Modifier]:
        return [m.model_copy() for m in self._modifiers]

    # ------------------------------------------------------------------
    # Queued effects
    # ------------------------------------------------------------------

    def enqueue_resolution(self, entry: Any) -> Optional[QueuedEffect]:
        """Queue a deferred effect. Duplicates per card id are not prevented."""
        normalized = normalize_queue_entry(entry, now=self._clock())
        if normalized is None:
            logger.debug("Dropping unusable queue entry %r", entry)
            return None
        self._queue.append(normalized)
        self._handlers.queue_handler(normalized.card_id).on_enqueue(normalized)
        self._notify()
        return normalized.model_copy(deep=True)

    def complete_queued_effect(
        self,
        card_id: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> Optional[QueuedEffect]:
        """Resolve the oldest queued entry for ``card_id``.

        Runs the card's ``on_complete`` handler and records a history entry
        with ``resolved_at``. Returns None when nothing is queued for the card.
        """
        payload = dict(payload or {})
        for entry in self._queue:
            if entry.card_id == card_id:
                break
        else:
            return None

        self._queue.remove(entry)
        self._handlers.queue_handler(entry.card_id).on_complete(dict(entry.meta), payload)
        now = self._clock()
        self._push_history(
            {
                "id": f"{entry.id}-resolved",
                "card_id": entry.card_id,
                "label": entry.label,
                "night": entry.night,
                "meta": entry.meta,
                "payload": payload,
                "recorded_at": now,
                "resolved_at": now,
            }
        )
        self._notify()
        return entry.model_copy(deep=True)

    def has_queued(self, card_id: str) -> bool:
        return any(entry.card_id == card_id for entry in self._queue)

    def queued_effects(self) -> list[QueuedEffect]:
        return [entry.model_copy(deep=True) for entry in self._queue]

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _push_history(self, entry: Any) -> Optional[HistoryEntry]:
        normalized = normalize_history_entry(entry, now=self._clock())
        if normalized is not None:
            self._history.appendleft(normalized)
        return normalized

    def record_history(self, entry: Any) -> Optional[HistoryEntry]:
        """Record an attempted or resolved event outcome."""
        normalized = self._push_history(entry)
        if normalized is None:
            return None
        self._notify()
        return normalized.model_copy(deep=True)

    def history(self) -> list[HistoryEntry]:
        """History entries, newest first."""
        return [entry.model_copy(deep=True) for entry in self._history]

    # ------------------------------------------------------------------
    # Bulk state
    # ------------------------------------------------------------------

    def clear_all(self, silent: bool = False) -> None:
        """Drop every modifier, queued effect and history entry.

        Handlers are not run; callers reset dependent state themselves.
        """
        self._modifiers = []
        self._queue = []
        self._history.clear()
        self._notify(silent)

    def replace_state(self, next_state: Any, silent: bool = False) -> None:
        """Replace the whole scheduler state with a (possibly raw) snapshot.

        Malformed records are dropped; handlers are not run.
        """
        if isinstance(next_state, SchedulerState):
            data = next_state.model_dump()
        elif isinstance(next_state, dict):
            data = next_state
        else:
            data = {}

        now = self._clock()
        modifiers: list[Modifier] = []
        for raw in data.get("active_modifiers") or []:
            modifier = normalize_modifier(raw)
            if modifier is not None:
                modifiers = [m for m in modifiers if m.id != modifier.id] + [modifier]
        queue = [
            entry for entry in (normalize_queue_entry(raw, now=now) for raw in data.get("queued_effects") or [])
            if entry is not None
        ]
        history = [
            entry for entry in (normalize_history_entry(raw, now=now) for raw in data.get("history") or [])
            if entry is not None
        ]

        self._modifiers = modifiers
        self._queue = queue
        self._history.clear()
        self._history.extend(history[: self._history.maxlen])
        self._notify(silent)

    def get_state(self) -> SchedulerState:
        """Deep, normalized copy of the current state."""
        return SchedulerState(
            active_modifiers=self.active_modifiers(),
            queued_effects=self.queued_effects(),
            history=self.history(),
        )
