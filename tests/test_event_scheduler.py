"""Tests for EventScheduler - modifiers, queued effects and history."""

import pytest

from narrator.engine import RoleTrackers
from narrator.scheduler import (
    CardId,
    EventScheduler,
    HandlerRegistry,
    NoOpModifierHandler,
    NoOpQueueHandler,
    normalize_modifier,
    normalize_queue_entry,
)


# ============================================================================
# Helper functions
# ============================================================================

class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: int = 1000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def create_scheduler(trackers: RoleTrackers | None = None, history_limit: int = 25) -> tuple[EventScheduler, list[int]]:
    """Scheduler with the default handlers and a notification counter."""
    trackers = trackers or RoleTrackers()
    notifications: list[int] = []
    scheduler = EventScheduler(
        handlers=HandlerRegistry.default(lambda: trackers),
        notify=lambda: notifications.append(1),
        history_limit=history_limit,
        clock=FakeClock(),
    )
    return scheduler, notifications


@pytest.fixture
def trackers() -> RoleTrackers:
    return RoleTrackers()


# ============================================================================
# Normalizers
# ============================================================================

class TestNormalizers:
    """Tests for modifier and queue entry normalization."""

    def test_modifier_id_falls_back_to_origin(self):
        modifier = normalize_modifier({"origin_card_id": "blood-moon"})
        assert modifier.id == "blood-moon"
        assert modifier.label == "blood-moon"

    def test_modifier_without_id_is_dropped(self):
        assert normalize_modifier({"label": "nameless"}) is None
        assert normalize_modifier("blood-moon") is None

    def test_non_finite_expiry_becomes_none(self):
        modifier = normalize_modifier({"id": "x", "expires_after_night": float("inf")})
        assert modifier.expires_after_night is None

    def test_fresh_queue_entry_gets_derived_id(self):
        entry = normalize_queue_entry({"card_id": "phoenix-pulse", "meta": "junk"}, now=42)
        assert entry.id == "phoenix-pulse-42"
        assert entry.scheduled_at == 42
        assert entry.meta == {}

    def test_persisted_queue_entry_keeps_id(self):
        entry = normalize_queue_entry({"id": "keep-me", "card_id": "x", "scheduled_at": 7}, now=42)
        assert entry.id == "keep-me"
        assert entry.scheduled_at == 7


# ============================================================================
# Modifiers
# ============================================================================

class TestModifiers:
    """Tests for modifier identity, expiry and side effects."""

    def test_same_id_replaces(self):
        scheduler, _ = create_scheduler()
        scheduler.add_modifier({"id": "fog", "label": "Fog", "expires_after_night": 1})
        scheduler.add_modifier({"id": "fog", "label": "Thick fog", "expires_after_night": 2})

        modifiers = scheduler.active_modifiers()
        assert len(modifiers) == 1
        assert modifiers[0].label == "Thick fog"

    def test_unusable_modifier_is_dropped(self):
        scheduler, notifications = create_scheduler()
        assert scheduler.add_modifier({}) is None
        assert scheduler.active_modifiers() == []
        assert notifications == []

    def test_expiry_is_strictly_after_night(self):
        scheduler, _ = create_scheduler()
        scheduler.add_modifier({"id": "fog", "expires_after_night": 3})

        assert scheduler.clear_expired_modifiers(3) == []
        assert scheduler.has_modifier("fog")
        expired = scheduler.clear_expired_modifiers(4)
        assert [m.id for m in expired] == ["fog"]
        assert not scheduler.has_modifier("fog")

    def test_modifier_without_expiry_stays(self):
        scheduler, _ = create_scheduler()
        scheduler.add_modifier({"id": "curse"})
        assert scheduler.clear_expired_modifiers(100) == []

    def test_blood_moon_handler_sets_tracker(self, trackers: RoleTrackers):
        scheduler, _ = create_scheduler(trackers)
        scheduler.add_modifier({"id": CardId.BLOOD_MOON.value, "expires_after_night": 1})
        assert trackers.blood_moon_active

        scheduler.clear_expired_modifiers(2)
        assert not trackers.blood_moon_active

    def test_remove_runs_expire_handler(self, trackers: RoleTrackers):
        scheduler, _ = create_scheduler(trackers)
        scheduler.add_modifier({"id": CardId.BLOOD_MOON.value})
        removed = scheduler.remove_modifier(CardId.BLOOD_MOON.value)
        assert removed.id == CardId.BLOOD_MOON.value
        assert not trackers.blood_moon_active
        assert scheduler.remove_modifier("missing") is None

    def test_returned_modifier_is_a_copy(self):
        scheduler, _ = create_scheduler()
        modifier = scheduler.add_modifier({"id": "fog"})
        modifier.label = "changed"
        assert scheduler.active_modifiers()[0].label == "fog"


# ============================================================================
# Queued effects
# ============================================================================

class TestQueuedEffects:
    """Tests for deferred effects."""

    def test_complete_oldest_first(self):
        scheduler, _ = create_scheduler()
        first = scheduler.enqueue_resolution({"card_id": "omen", "meta": {"n": 1}})
        scheduler.enqueue_resolution({"card_id": "omen", "meta": {"n": 2}})

        completed = scheduler.complete_queued_effect("omen", {"ok": True})
        assert completed.id == first.id
        assert [entry.meta["n"] for entry in scheduler.queued_effects()] == [2]

    def test_completion_records_resolved_history(self):
        scheduler, _ = create_scheduler()
        scheduler.enqueue_resolution({"card_id": "omen", "night": 2})
        scheduler.complete_queued_effect("omen", {"revived": [1]})

        history = scheduler.history()
        assert history[0].card_id == "omen"
        assert history[0].payload == {"revived": [1]}
        assert history[0].resolved_at is not None

    def test_complete_unknown_card(self):
        scheduler, _ = create_scheduler()
        assert scheduler.complete_queued_effect("nothing") is None

    def test_phoenix_handler_tracks_pending(self, trackers: RoleTrackers):
        scheduler, _ = create_scheduler(trackers)
        scheduler.enqueue_resolution({"card_id": CardId.PHOENIX_PULSE.value})
        assert trackers.phoenix_pulse_pending
        scheduler.complete_queued_effect(CardId.PHOENIX_PULSE.value, {})
        assert not trackers.phoenix_pulse_pending

    def test_defer_clear_keeps_pending(self, trackers: RoleTrackers):
        scheduler, _ = create_scheduler(trackers)
        scheduler.enqueue_resolution({"card_id": CardId.PHOENIX_PULSE.value})
        scheduler.complete_queued_effect(CardId.PHOENIX_PULSE.value, {"defer_clear": True})
        assert trackers.phoenix_pulse_pending


# ============================================================================
# History and bulk state
# ============================================================================

class TestHistoryAndState:
    """Tests for history capping and state replacement."""

    def test_history_is_capped_newest_first(self):
        scheduler, _ = create_scheduler(history_limit=3)
        for night in range(5):
            scheduler.record_history({"card_id": "omen", "night": night})
        assert [entry.night for entry in scheduler.history()] == [4, 3, 2]

    def test_history_without_card_is_dropped(self):
        scheduler, _ = create_scheduler()
        assert scheduler.record_history({"label": "nothing"}) is None
        assert scheduler.history() == []

    def test_mutations_notify(self):
        scheduler, notifications = create_scheduler()
        scheduler.add_modifier({"id": "fog"})
        scheduler.enqueue_resolution({"card_id": "omen"})
        assert len(notifications) == 2

    def test_silent_clear(self):
        scheduler, notifications = create_scheduler()
        scheduler.add_modifier({"id": "fog"})
        scheduler.clear_all(silent=True)
        assert scheduler.active_modifiers() == []
        assert len(notifications) == 1

    def test_replace_state_drops_malformed_records(self, trackers: RoleTrackers):
        scheduler, _ = create_scheduler(trackers)
        scheduler.replace_state({
            "active_modifiers": [{"id": "fog"}, {"label": "bad"}, {"id": CardId.BLOOD_MOON.value}],
            "queued_effects": [{"card_id": "omen"}, "junk"],
            "history": [{"card_id": "omen"}, {"no": "card"}],
        })
        state = scheduler.get_state()
        assert [m.id for m in state.active_modifiers] == ["fog", CardId.BLOOD_MOON.value]
        assert len(state.queued_effects) == 1
        assert len(state.history) == 1
        # Handlers are not run on replacement
        assert not trackers.blood_moon_active

    def test_state_round_trip(self):
        scheduler, _ = create_scheduler()
        scheduler.add_modifier({"id": "fog", "expires_after_night": 2})
        scheduler.enqueue_resolution({"card_id": "omen"})
        other, _ = create_scheduler()
        other.replace_state(scheduler.get_state())
        assert other.get_state() == scheduler.get_state()


# ============================================================================
# Handler registry
# ============================================================================

class TestHandlerRegistry:
    """Tests for handler lookup."""

    def test_unknown_ids_get_noop_handlers(self):
        registry = HandlerRegistry.default(RoleTrackers)
        assert isinstance(registry.modifier_handler("unknown"), NoOpModifierHandler)
        assert isinstance(registry.queue_handler("unknown"), NoOpQueueHandler)

    def test_later_keys_are_tried(self, trackers: RoleTrackers):
        registry = HandlerRegistry.default(lambda: trackers)
        handler = registry.modifier_handler("custom-id", CardId.BLOOD_MOON.value)
        assert not isinstance(handler, NoOpModifierHandler)

    def test_card_id_parse(self):
        assert CardId.parse("blood-moon") == CardId.BLOOD_MOON
        assert CardId.parse("nope") is None
