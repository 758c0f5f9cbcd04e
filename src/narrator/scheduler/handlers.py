"""Side-effect handlers for modifiers and queued effects.

Handlers are looked up by card id. The set of card ids is closed
(``CardId``); anything else resolves to a no-op handler so callers never
branch on a missing entry.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from narrator.scheduler.records import Modifier, QueuedEffect

if TYPE_CHECKING:
    from narrator.engine.night_action_store import RoleTrackers

logger = logging.getLogger(__name__)


class CardId(str, Enum):
    """Known event cards."""

    BLOOD_MOON = "blood-moon"
    PHOENIX_PULSE = "phoenix-pulse"

    @classmethod
    def parse(cls, value: Any) -> Optional["CardId"]:
        """Return the matching CardId, or None for unknown ids."""
        try:
            return cls(value)
        except ValueError:
            return None


class ModifierHandler(Protocol):
    """Side effects run when a modifier is added or removed."""

    def apply(self, modifier: Modifier) -> None:
        ...

    def expire(self, modifier: Modifier) -> None:
        ...


class QueueHandler(Protocol):
    """Side effects run when a deferred effect is queued or completed."""

    def on_enqueue(self, entry: QueuedEffect) -> None:
        ...

    def on_complete(self, meta: dict[str, Any], payload: dict[str, Any]) -> None:
        ...


class NoOpModifierHandler:
    """Fallback for modifiers without side effects."""

    def apply(self, modifier: Modifier) -> None:
        pass

    def expire(self, modifier: Modifier) -> None:
        pass


class NoOpQueueHandler:
    """Fallback for queued effects without side effects."""

    def on_enqueue(self, entry: QueuedEffect) -> None:
        pass

    def on_complete(self, meta: dict[str, Any], payload: dict[str, Any]) -> None:
        pass


TrackersGetter = Callable[[], "RoleTrackers"]


class BloodMoonHandler:
    """Keeps ``blood_moon_active`` in sync with the blood moon modifier."""

    def __init__(self, get_trackers: TrackersGetter):
        self._get_trackers = get_trackers

    def apply(self, modifier: Modifier) -> None:
        self._get_trackers().blood_moon_active = True

    def expire(self, modifier: Modifier) -> None:
        self._get_trackers().blood_moon_active = False


class PhoenixPulseHandler:
    """Marks a pending phoenix revival until the queued effect completes."""

    def __init__(self, get_trackers: TrackersGetter):
        self._get_trackers = get_trackers

    def on_enqueue(self, entry: QueuedEffect) -> None:
        self._get_trackers().phoenix_pulse_pending = True

    def on_complete(self, meta: dict[str, Any], payload: dict[str, Any]) -> None:
        if not payload.get("defer_clear"):
            self._get_trackers().phoenix_pulse_pending = False


_NOOP_MODIFIER = NoOpModifierHandler()
_NOOP_QUEUE = NoOpQueueHandler()


class HandlerRegistry:
    """Maps card ids to modifier and queue handlers."""

    def __init__(
        self,
        modifier_handlers: Optional[dict[CardId, ModifierHandler]] = None,
        queue_handlers: Optional[dict[CardId, QueueHandler]] = None,
    ):
        self._modifier_handlers = dict(modifier_handlers or {})
        self._queue_handlers = dict(queue_handlers or {})

    @classmethod
    def default(cls, get_trackers: TrackersGetter) -> "HandlerRegistry":
        """Registry with the built-in blood moon and phoenix pulse handlers."""
        return cls(
            modifier_handlers={CardId.BLOOD_MOON: BloodMoonHandler(get_trackers)},
            queue_handlers={CardId.PHOENIX_PULSE: PhoenixPulseHandler(get_trackers)},
        )

    def modifier_handler(self, *keys: str) -> ModifierHandler:
        """First registered handler among ``keys`` (origin card id, then id)."""
        for key in keys:
            card_id = CardId.parse(key)
            if card_id is not None and card_id in self._modifier_handlers:
                return self._modifier_handlers[card_id]
        logger.debug("No modifier handler for %s", keys)
        return _NOOP_MODIFIER

    def queue_handler(self, card_id: str) -> QueueHandler:
        parsed = CardId.parse(card_id)
        if parsed is not None and parsed in self._queue_handlers:
            return self._queue_handlers[parsed]
        logger.debug("No queue handler for %s", card_id)
        return _NOOP_QUEUE
