"""Deck weighting and per-card evaluation for the night's random events.

Weights live in ``[0, 3]``. A weight below 1 acts as an outer probability
gate; a weight of 1 or more grants ``round(weight)`` attempts at the card's
own odds.
"""

import logging
import math
import random
from typing import NamedTuple, Optional

from narrator.config import MAX_DECK_WEIGHT, DeckConfig, EventConfig
from narrator.scheduler.cards import Campaign, EventCard, EventContext, TriggerResult

logger = logging.getLogger(__name__)


class DeckEntry(NamedTuple):
    """A card eligible tonight, with its deck's resolved weight."""

    card: EventCard
    weight: float
    index: int  # catalogue order, tie-breaker


def resolve_deck_configs(
    config: EventConfig,
    campaign: Optional[Campaign],
) -> dict[str, DeckConfig]:
    """Campaign deck settings overlaid by the game's own deck settings."""
    resolved: dict[str, DeckConfig] = {}
    if campaign is not None:
        resolved.update({deck_id: deck.model_copy() for deck_id, deck in campaign.deck_config.items()})
    resolved.update({deck_id: deck.model_copy() for deck_id, deck in config.decks.items()})
    return resolved


def deck_weight(deck_configs: dict[str, DeckConfig], deck_id: str) -> float:
    """Resolved weight of a deck; unknown decks default to weight 1, disabled decks to 0."""
    deck = deck_configs.get(deck_id)
    if deck is None:
        return 1.0
    if not deck.enabled:
        return 0.0
    return min(max(deck.weight, 0.0), MAX_DECK_WEIGHT)


def build_night_deck_entries(
    cards: list[EventCard],
    deck_configs: dict[str, DeckConfig],
) -> list[DeckEntry]:
    """Cards in active decks, heaviest first, stable by catalogue order."""
    entries = [
        DeckEntry(card=card, weight=deck_weight(deck_configs, card.deck_id), index=index)
        for index, card in enumerate(cards)
    ]
    entries = [entry for entry in entries if entry.weight > 0]
    entries.sort(key=lambda entry: (-entry.weight, entry.index))
    return entries


def evaluate_event_card(
    card: EventCard,
    weight: float,
    context: EventContext,
    rng: random.Random,
) -> TriggerResult:
    """Decide whether ``card`` fires tonight.

    Never raises; a card without a usable trigger or weight reports why in
    ``reason``.
    """
    trigger = getattr(card, "trigger", None)
    if not callable(trigger):
        return TriggerResult(triggered=False, reason="missing-trigger")
    if weight <= 0:
        return TriggerResult(triggered=False, reason="weight-zero", meta={"weight": weight})

    if weight < 1:
        gate_roll = rng.random()
        if gate_roll > weight:
            return TriggerResult(
                triggered=False,
                reason="weight-gate",
                meta={"weight": weight, "gate_roll": gate_roll},
            )

    attempts = max(1, math.floor(weight + 0.5))  # half-up rounding
    result = trigger(context)
    used = 1
    while not result.triggered and result.reason != "disabled" and used < attempts:
        result = trigger(context)
        used += 1

    logger.debug("Card %s evaluated: triggered=%s after %d attempt(s)", card.card_id.value, result.triggered, used)
    return result.model_copy(update={"meta": {**result.meta, "weight": weight, "attempts": used}})
