"""Event cards, decks and campaigns.

A card supplies ``trigger(context)`` (decide whether it fires tonight) and
``effect(context, trigger)`` (mutate the scheduler and describe the outcome).
Neither raises for expected conditions; both report through their result
models.
"""

import random
from typing import TYPE_CHECKING, Any, Optional, Protocol
from pydantic import BaseModel, Field

from narrator.config import DeckConfig, EventConfig
from narrator.events.game_events import ActionType, LogItem
from narrator.scheduler.event_scheduler import EventScheduler
from narrator.scheduler.handlers import CardId
from narrator.storage.base import Storage, get_number, set_number

if TYPE_CHECKING:
    from narrator.engine.night_action_store import RoleTrackers


BLOOD_MOON_PITY_KEY = "bloodMoonPityTimer"
BLOOD_MOON_PITY_STEP: float = 0.1
BLOOD_MOON_PITY_THRESHOLD: int = 3
DEFAULT_BLOOD_MOON_CHANCE: float = 0.2
DEFAULT_PHOENIX_PULSE_CHANCE: float = 0.05


class TriggerResult(BaseModel):
    """Outcome of a card's trigger check, meta is kept for history."""

    triggered: bool
    reason: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)

    def history_meta(self) -> dict[str, Any]:
        meta = {"triggered": self.triggered, **self.meta}
        if self.reason is not None:
            meta["reason"] = self.reason
        return meta


class EffectOutcome(BaseModel):
    """Narrator-facing outcome of a card effect."""

    skipped: bool = False
    reason: Optional[str] = None
    log: Optional[LogItem] = None
    message: Optional[str] = None
    narrator_note: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)


class EventContext:
    """Everything a card may read or touch while being evaluated."""

    def __init__(
        self,
        scheduler: EventScheduler,
        storage: Storage,
        config: EventConfig,
        trackers: "RoleTrackers",
        night_number: int,
        rng: random.Random,
        script_step: Optional[dict[str, Any]] = None,
    ):
        self.scheduler = scheduler
        self.storage = storage
        self.config = config
        self.trackers = trackers
        self.night_number = night_number
        self.rng = rng
        self.script_step = script_step


class EventCard(Protocol):
    """A random or scripted night event."""

    card_id: CardId
    label: str
    deck_id: str
    description: str

    def trigger(self, context: EventContext) -> TriggerResult:
        ...

    def effect(self, context: EventContext, trigger: TriggerResult) -> EffectOutcome:
        ...


def blood_moon_chance(base: float, pity_timer: float) -> float:
    """Base chance raised by 10% per failed night, capped at 1."""
    base = min(max(base, 0.0), 1.0)
    return min(base + pity_timer * BLOOD_MOON_PITY_STEP, 1.0)


class BloodMoonCard:
    """Werewolves choose two victims tonight.

    Uses a pity timer persisted under ``bloodMoonPityTimer``: every failed
    roll raises the chance, the third consecutive miss forces the event, and
    any trigger resets the timer to zero.
    """

    card_id = CardId.BLOOD_MOON
    label = "Blood Moon"
    deck_id = "legacy"
    description = "The moon turns red - the werewolves may choose a second victim."

    def trigger(self, context: EventContext) -> TriggerResult:
        config = context.config
        if not config.random_events_enabled or not config.blood_moon_enabled:
            return TriggerResult(triggered=False, reason="disabled")

        if context.trackers.blood_moon_active or context.scheduler.has_modifier(self.card_id.value):
            set_number(context.storage, BLOOD_MOON_PITY_KEY, 0)
            return TriggerResult(triggered=True, reason="forced", meta={"next_pity": 0})

        pity_timer = get_number(context.storage, BLOOD_MOON_PITY_KEY, 0)
        chance = blood_moon_chance(config.blood_moon_base_chance, pity_timer)
        roll = context.rng.random()
        triggered_by_chance = roll < chance
        triggered = triggered_by_chance
        next_pity = 0 if triggered else pity_timer + 1
        if not triggered and next_pity >= BLOOD_MOON_PITY_THRESHOLD:
            triggered = True
            next_pity = 0
        set_number(context.storage, BLOOD_MOON_PITY_KEY, next_pity)

        return TriggerResult(
            triggered=triggered,
            reason=None if triggered_by_chance or not triggered else "pity",
            meta={
                "pity_timer": pity_timer,
                "chance": chance,
                "roll": roll,
                "next_pity": next_pity,
                "triggered_by_chance": triggered_by_chance,
            },
        )

    def effect(self, context: EventContext, trigger: TriggerResult) -> EffectOutcome:
        if not trigger.triggered:
            return EffectOutcome(skipped=True, reason="not-triggered")

        context.scheduler.add_modifier(
            {
                "id": self.card_id.value,
                "label": self.label,
                "expires_after_night": context.night_number,
                "origin_card_id": self.card_id.value,
            }
        )
        return EffectOutcome(
            log=LogItem(
                type=ActionType.EVENT,
                label="Blood Moon rises",
                detail="The werewolves may choose two victims tonight.",
            ),
            narrator_note="The werewolves choose two victims.",
            meta=trigger.history_meta(),
        )


class PhoenixPulseCard:
    """Tonight's victims are revived at dawn."""

    card_id = CardId.PHOENIX_PULSE
    label = "Phoenix Pulse"
    deck_id = "legacy"
    description = "An ancient energy flares through the village - night victims are revived."

    def trigger(self, context: EventContext) -> TriggerResult:
        config = context.config
        if not config.random_events_enabled or not config.phoenix_pulse_enabled:
            return TriggerResult(triggered=False, reason="disabled")

        chance = config.phoenix_pulse_chance
        roll = context.rng.random()
        return TriggerResult(triggered=roll < chance, meta={"chance": chance, "roll": roll})

    def effect(self, context: EventContext, trigger: TriggerResult) -> EffectOutcome:
        if not trigger.triggered:
            return EffectOutcome(skipped=True, reason="not-triggered")

        # The scheduler accepts duplicates; a single pending pulse is enforced here
        if context.scheduler.has_queued(self.card_id.value):
            return EffectOutcome(skipped=True, reason="already-queued", meta=trigger.history_meta())

        context.scheduler.enqueue_resolution(
            {
                "card_id": self.card_id.value,
                "label": self.label,
                "night": context.night_number,
                "meta": trigger.history_meta(),
            }
        )
        return EffectOutcome(
            log=LogItem(
                type=ActionType.EVENT,
                label="Phoenix Pulse charged",
                detail="The Phoenix Pulse charges and will burst at dawn.",
            ),
            narrator_note="Night victims are revived in the morning.",
            message="Phoenix Pulse: an ancient energy gathers tonight.",
            meta=trigger.history_meta(),
        )


class Deck(BaseModel):
    """A named group of event cards."""

    id: str
    name: str
    description: str = ""


class CampaignStep(BaseModel):
    """A scripted event for an exact night."""

    night: int
    event_id: CardId
    title: str
    description: str = ""

    @property
    def key(self) -> str:
        return f"{self.night}:{self.event_id.value}"


class Campaign(BaseModel):
    """Deck weights plus a night-indexed script of forced events."""

    id: str
    name: str
    description: str = ""
    deck_config: dict[str, DeckConfig] = Field(default_factory=dict)
    script: list[CampaignStep] = Field(default_factory=list)


DEFAULT_DECKS: list[Deck] = [
    Deck(
        id="legacy",
        name="Classic deck",
        description="The familiar Blood Moon and Phoenix Pulse events.",
    ),
]

DEFAULT_CARDS: list[EventCard] = [BloodMoonCard(), PhoenixPulseCard()]

DEFAULT_CAMPAIGNS: list[Campaign] = [
    Campaign(
        id="legacy",
        name="Classic event chain",
        description="Keeps the familiar random events with a gentle omen.",
        deck_config={"legacy": DeckConfig(weight=1)},
        script=[
            CampaignStep(
                night=1,
                event_id=CardId.PHOENIX_PULSE,
                title="Omen of the Phoenix",
                description="The Phoenix Pulse crackles on the very first night and charges for sure.",
            )
        ],
    ),
]


def find_card(cards: list[EventCard], card_id: str) -> Optional[EventCard]:
    for card in cards:
        if card.card_id.value == card_id:
            return card
    return None


def find_campaign(campaigns: list[Campaign], campaign_id: Optional[str]) -> Optional[Campaign]:
    if not campaign_id:
        return None
    for campaign in campaigns:
        if campaign.id == campaign_id:
            return campaign
    return None
