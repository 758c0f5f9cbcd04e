"""Scheduler package - random events, modifiers and deferred effects."""

from narrator.scheduler.records import (
    Modifier,
    QueuedEffect,
    HistoryEntry,
    SchedulerState,
    normalize_modifier,
    normalize_queue_entry,
    normalize_history_entry,
)
from narrator.scheduler.handlers import (
    CardId,
    ModifierHandler,
    QueueHandler,
    NoOpModifierHandler,
    NoOpQueueHandler,
    BloodMoonHandler,
    PhoenixPulseHandler,
    HandlerRegistry,
)
from narrator.scheduler.event_scheduler import EventScheduler
from narrator.scheduler.cards import (
    BLOOD_MOON_PITY_KEY,
    TriggerResult,
    EffectOutcome,
    EventContext,
    EventCard,
    BloodMoonCard,
    PhoenixPulseCard,
    Deck,
    Campaign,
    CampaignStep,
    DEFAULT_DECKS,
    DEFAULT_CARDS,
    DEFAULT_CAMPAIGNS,
    blood_moon_chance,
)
from narrator.scheduler.evaluation import (
    DeckEntry,
    resolve_deck_configs,
    build_night_deck_entries,
    evaluate_event_card,
)
from narrator.scheduler.engine import (
    EVENT_ENGINE_STATE_KEY,
    CampaignProgress,
    NightEventsReport,
    EventEngine,
)

__all__ = [
    "Modifier",
    "QueuedEffect",
    "HistoryEntry",
    "SchedulerState",
    "normalize_modifier",
    "normalize_queue_entry",
    "normalize_history_entry",
    "CardId",
    "ModifierHandler",
    "QueueHandler",
    "NoOpModifierHandler",
    "NoOpQueueHandler",
    "BloodMoonHandler",
    "PhoenixPulseHandler",
    "HandlerRegistry",
    "EventScheduler",
    "BLOOD_MOON_PITY_KEY",
    "TriggerResult",
    "EffectOutcome",
    "EventContext",
    "EventCard",
    "BloodMoonCard",
    "PhoenixPulseCard",
    "Deck",
    "Campaign",
    "CampaignStep",
    "DEFAULT_DECKS",
    "DEFAULT_CARDS",
    "DEFAULT_CAMPAIGNS",
    "blood_moon_chance",
    "DeckEntry",
    "resolve_deck_configs",
    "build_night_deck_entries",
    "evaluate_event_card",
    "EVENT_ENGINE_STATE_KEY",
    "CampaignProgress",
    "NightEventsReport",
    "EventEngine",
]
