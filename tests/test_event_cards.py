"""Tests for event cards, deck weighting and the event engine."""

import random

import pytest

from narrator.config import DeckConfig, EventConfig
from narrator.engine import RoleTrackers
from narrator.scheduler import (
    BLOOD_MOON_PITY_KEY,
    EVENT_ENGINE_STATE_KEY,
    BloodMoonCard,
    CardId,
    EventContext,
    EventEngine,
    EventScheduler,
    HandlerRegistry,
    PhoenixPulseCard,
    TriggerResult,
    blood_moon_chance,
    build_night_deck_entries,
    evaluate_event_card,
    resolve_deck_configs,
)
from narrator.storage import InMemoryStorage, get_number


# ============================================================================
# Helper types and functions
# ============================================================================

class FixedRng(random.Random):
    """Random generator returning a fixed sequence of rolls."""

    def __init__(self, rolls: list[float]):
        super().__init__(0)
        self._rolls = list(rolls)

    def random(self) -> float:
        return self._rolls.pop(0) if self._rolls else 0.99


class CountingCard:
    """Card that never triggers and counts its trigger calls."""

    card_id = CardId.BLOOD_MOON
    label = "Counting"
    deck_id = "legacy"
    description = ""

    def __init__(self):
        self.calls = 0

    def trigger(self, context: EventContext) -> TriggerResult:
        self.calls += 1
        return TriggerResult(triggered=False)

    def effect(self, context, trigger):
        raise AssertionError("never triggered")


def create_context(
    config: EventConfig | None = None,
    rolls: list[float] | None = None,
    trackers: RoleTrackers | None = None,
    storage: InMemoryStorage | None = None,
) -> EventContext:
    trackers = trackers or RoleTrackers()
    return EventContext(
        scheduler=EventScheduler(handlers=HandlerRegistry.default(lambda: trackers)),
        storage=storage or InMemoryStorage(),
        config=config or EventConfig(),
        trackers=trackers,
        night_number=2,
        rng=FixedRng(rolls or []),
    )


def create_engine(config: EventConfig, rolls: list[float] | None = None) -> tuple[EventEngine, RoleTrackers, InMemoryStorage]:
    trackers = RoleTrackers()
    storage = InMemoryStorage()
    engine = EventEngine(storage=storage, config=config, get_trackers=lambda: trackers, rng=FixedRng(rolls or []))
    return engine, trackers, storage


# ============================================================================
# Blood Moon
# ============================================================================

class TestBloodMoonCard:
    """Tests for the blood moon chance and pity timer."""

    def test_chance_grows_with_pity(self):
        assert blood_moon_chance(0.2, 0) == pytest.approx(0.2)
        assert blood_moon_chance(0.2, 2) == pytest.approx(0.4)
        assert blood_moon_chance(0.95, 5) == 1.0

    def test_miss_raises_pity(self):
        context = create_context(rolls=[0.9])
        result = BloodMoonCard().trigger(context)
        assert not result.triggered
        assert get_number(context.storage, BLOOD_MOON_PITY_KEY) == 1

    def test_hit_resets_pity(self):
        storage = InMemoryStorage({BLOOD_MOON_PITY_KEY: 2})
        context = create_context(rolls=[0.1], storage=storage)
        result = BloodMoonCard().trigger(context)
        assert result.triggered
        assert result.reason is None
        assert get_number(storage, BLOOD_MOON_PITY_KEY) == 0

    def test_third_miss_forces_trigger(self):
        storage = InMemoryStorage({BLOOD_MOON_PITY_KEY: 2})
        context = create_context(rolls=[0.99], storage=storage)
        result = BloodMoonCard().trigger(context)
        assert result.triggered
        assert result.reason == "pity"
        assert get_number(storage, BLOOD_MOON_PITY_KEY) == 0

    def test_active_blood_moon_is_forced(self):
        trackers = RoleTrackers(blood_moon_active=True)
        result = BloodMoonCard().trigger(create_context(trackers=trackers))
        assert result.triggered
        assert result.reason == "forced"

    def test_disabled(self):
        config = EventConfig(blood_moon_enabled=False)
        result = BloodMoonCard().trigger(create_context(config=config))
        assert result.reason == "disabled"

    def test_effect_adds_modifier_for_tonight(self):
        context = create_context()
        outcome = BloodMoonCard().effect(context, TriggerResult(triggered=True))
        modifier = context.scheduler.active_modifiers()[0]

        assert modifier.id == CardId.BLOOD_MOON.value
        assert modifier.expires_after_night == context.night_number
        assert context.trackers.blood_moon_active
        assert outcome.log is not None

    def test_effect_without_trigger_is_skipped(self):
        outcome = BloodMoonCard().effect(create_context(), TriggerResult(triggered=False))
        assert outcome.skipped


# ============================================================================
# Phoenix Pulse
# ============================================================================

class TestPhoenixPulseCard:
    """Tests for the phoenix pulse card."""

    def test_trigger_uses_configured_chance(self):
        config = EventConfig(phoenix_pulse_chance=0.5)
        assert PhoenixPulseCard().trigger(create_context(config=config, rolls=[0.4])).triggered
        assert not PhoenixPulseCard().trigger(create_context(config=config, rolls=[0.6])).triggered

    def test_single_flight(self):
        context = create_context()
        card = PhoenixPulseCard()
        first = card.effect(context, TriggerResult(triggered=True))
        second = card.effect(context, TriggerResult(triggered=True))

        assert not first.skipped
        assert second.skipped
        assert second.reason == "already-queued"
        assert len(context.scheduler.queued_effects()) == 1
        assert context.trackers.phoenix_pulse_pending


# ============================================================================
# Deck weighting
# ============================================================================

class TestEvaluation:
    """Tests for weight gates and attempts."""

    def test_weight_zero(self):
        card = CountingCard()
        result = evaluate_event_card(card, 0, create_context(), random.Random(1))
        assert result.reason == "weight-zero"
        assert card.calls == 0

    def test_weight_gate_blocks(self):
        card = CountingCard()
        result = evaluate_event_card(card, 0.5, create_context(), FixedRng([0.8]))
        assert result.reason == "weight-gate"
        assert card.calls == 0

    def test_weight_gate_passes(self):
        card = CountingCard()
        result = evaluate_event_card(card, 0.5, create_context(), FixedRng([0.2]))
        assert card.calls == 1
        assert result.meta["attempts"] == 1

    def test_heavy_weight_grants_attempts(self):
        card = CountingCard()
        result = evaluate_event_card(card, 2.5, create_context(), random.Random(1))
        # 2.5 rounds half up to 3
        assert card.calls == 3
        assert result.meta["attempts"] == 3

    def test_card_without_trigger(self):
        class Silent:
            card_id = CardId.BLOOD_MOON
        result = evaluate_event_card(Silent(), 1, create_context(), random.Random(1))
        assert result.reason == "missing-trigger"

    def test_deck_weight_is_clamped(self):
        assert DeckConfig(weight=10).weight == 3.0
        assert DeckConfig(weight=-1).weight == 0.0
        assert DeckConfig(weight="abc").weight == 0.0

    def test_game_deck_config_overrides_campaign(self):
        engine, _, _ = create_engine(EventConfig(decks={"legacy": DeckConfig(weight=2)}))
        resolved = resolve_deck_configs(engine.config, engine.active_campaign)
        assert resolved["legacy"].weight == 2

    def test_disabled_deck_has_no_entries(self):
        cards = [BloodMoonCard(), PhoenixPulseCard()]
        assert build_night_deck_entries(cards, {"legacy": DeckConfig(enabled=False)}) == []
        assert len(build_night_deck_entries(cards, {})) == 2


# ============================================================================
# Event engine
# ============================================================================

class TestEventEngine:
    """Tests for night event evaluation and persistence."""

    def test_disabled_events_only_expire(self):
        engine, _, _ = create_engine(EventConfig(random_events_enabled=False))
        engine.scheduler.add_modifier({"id": "fog", "expires_after_night": 1})
        report = engine.trigger_night_events(1)

        assert report.night == 2
        assert [m.id for m in report.expired] == ["fog"]
        assert report.triggered == []

    def test_campaign_script_forces_phoenix_on_night_one(self):
        config = EventConfig(blood_moon_enabled=False, phoenix_pulse_chance=0)
        engine, trackers, _ = create_engine(config)
        report = engine.trigger_night_events(0)

        assert CardId.PHOENIX_PULSE.value in report.triggered
        assert engine.scheduler.has_queued(CardId.PHOENIX_PULSE.value)
        assert trackers.phoenix_pulse_pending
        assert engine.campaign_progress.executed == ["1:phoenix-pulse"]

    def test_campaign_step_runs_once(self):
        config = EventConfig(blood_moon_enabled=False, phoenix_pulse_chance=0)
        engine, _, _ = create_engine(config)
        engine.trigger_night_events(0)
        engine.scheduler.complete_queued_effect(CardId.PHOENIX_PULSE.value)
        report = engine.trigger_night_events(0)
        assert CardId.PHOENIX_PULSE.value not in report.triggered

    def test_without_campaign_nothing_is_scripted(self):
        config = EventConfig(campaign_id=None, blood_moon_enabled=False, phoenix_pulse_chance=0)
        engine, _, _ = create_engine(config)
        report = engine.trigger_night_events(0)
        assert report.triggered == []

    def test_state_is_persisted(self):
        engine, _, storage = create_engine(EventConfig(random_events_enabled=False))
        engine.scheduler.add_modifier({"id": "fog"})
        document = storage.get(EVENT_ENGINE_STATE_KEY)
        assert document["scheduler"]["active_modifiers"][0]["id"] == "fog"

    def test_load_rehydrates_trackers(self):
        engine, _, storage = create_engine(EventConfig())
        engine.scheduler.add_modifier({"id": CardId.BLOOD_MOON.value})

        other, other_trackers, _ = create_engine(EventConfig())
        other.storage = storage
        other.load()
        assert other.scheduler.has_modifier(CardId.BLOOD_MOON.value)
        assert other_trackers.blood_moon_active

    def test_corrupt_document_starts_empty(self):
        engine, _, storage = create_engine(EventConfig())
        storage.set(EVENT_ENGINE_STATE_KEY, ["not", "a", "dict"])
        engine.load()
        assert engine.scheduler.active_modifiers() == []

    def test_activate_unknown_card(self):
        engine, _, _ = create_engine(EventConfig())
        assert engine.activate("meteor", 1) is None

    def test_activate_blood_moon(self):
        engine, trackers, _ = create_engine(EventConfig())
        outcome = engine.activate(CardId.BLOOD_MOON.value, 3)
        assert not outcome.skipped
        assert trackers.blood_moon_active
        assert engine.scheduler.history()[0].card_id == CardId.BLOOD_MOON.value
