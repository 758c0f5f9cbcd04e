"""EventEngine - owns the scheduler, the card catalogue and campaign progress.

The engine is consulted by the phase controller at night start. It persists
its state (scheduler plus campaign progress) as one JSON document under
``werwolfEventEngineState`` after every scheduler mutation; persistence is
best effort and a corrupt document falls back to an empty state.
"""

import logging
import random
from typing import Any, Callable, Optional
from pydantic import BaseModel, Field, ValidationError

from narrator.clock import now_ms
from narrator.config import EventConfig
from narrator.events.game_events import LogItem
from narrator.scheduler.cards import (
    DEFAULT_CAMPAIGNS,
    DEFAULT_CARDS,
    Campaign,
    CampaignStep,
    EffectOutcome,
    EventCard,
    EventContext,
    TriggerResult,
    find_campaign,
    find_card,
)
from narrator.scheduler.evaluation import (
    build_night_deck_entries,
    evaluate_event_card,
    resolve_deck_configs,
)
from narrator.scheduler.event_scheduler import EventScheduler
from narrator.scheduler.handlers import HandlerRegistry, TrackersGetter
from narrator.scheduler.records import Modifier
from narrator.storage.base import Storage, safe_get, safe_set

logger = logging.getLogger(__name__)

EVENT_ENGINE_STATE_KEY = "werwolfEventEngineState"
CAMPAIGN_EXECUTED_LIMIT = 50


class CampaignProgress(BaseModel):
    """Which scripted campaign steps already ran (``night:event_id`` keys)."""

    id: Optional[str] = None
    executed: list[str] = Field(default_factory=list)


class NightEventsReport(BaseModel):
    """Everything the night's event evaluation surfaced for the narrator."""

    night: int
    expired: list[Modifier] = Field(default_factory=list)
    triggered: list[str] = Field(default_factory=list)
    skipped: dict[str, str] = Field(default_factory=dict)  # card id -> reason
    logs: list[LogItem] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    narrator_notes: list[str] = Field(default_factory=list)


class EventEngine:
    """Random and scripted night events for one game session."""

    def __init__(
        self,
        storage: Storage,
        config: EventConfig,
        get_trackers: TrackersGetter,
        rng: Optional[random.Random] = None,
        cards: Optional[list[EventCard]] = None,
        campaigns: Optional[list[Campaign]] = None,
        history_limit: int = 25,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.config = config
        self.rng = rng or random.Random()
        self.cards = list(cards if cards is not None else DEFAULT_CARDS)
        self.campaigns = list(campaigns if campaigns is not None else DEFAULT_CAMPAIGNS)
        self._get_trackers = get_trackers
        self.scheduler = EventScheduler(
            handlers=HandlerRegistry.default(get_trackers),
            notify=self.persist,
            history_limit=history_limit,
            clock=clock,
        )
        self.campaign_progress = CampaignProgress(id=config.campaign_id)

    # ------------------------------------------------------------------
    # Configuration and campaigns
    # ------------------------------------------------------------------

    @property
    def active_campaign(self) -> Optional[Campaign]:
        return find_campaign(self.campaigns, self.config.campaign_id)

    def set_config(self, config: EventConfig) -> None:
        """Swap the event config; a new campaign restarts its progress."""
        campaign_changed = config.campaign_id != self.config.campaign_id
        self.config = config
        if campaign_changed:
            self.campaign_progress = CampaignProgress(id=config.campaign_id)
            self.persist()

    def mark_campaign_step_executed(self, step: CampaignStep) -> None:
        if step.key in self.campaign_progress.executed:
            return
        executed = self.campaign_progress.executed + [step.key]
        self.campaign_progress = CampaignProgress(
            id=self.campaign_progress.id,
            executed=executed[-CAMPAIGN_EXECUTED_LIMIT:],
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> dict[str, Any]:
        """Plain JSON-compatible document of scheduler and campaign progress."""
        return {
            "scheduler": self.scheduler.get_state().model_dump(mode="json"),
            "campaignProgress": {
                "id": self.campaign_progress.id,
                "executed": list(self.campaign_progress.executed[-CAMPAIGN_EXECUTED_LIMIT:]),
            },
        }

    def persist(self) -> bool:
        return safe_set(self.storage, EVENT_ENGINE_STATE_KEY, self.export_state())

    def load(self) -> None:
        """Restore the persisted document, or start empty if it is unusable."""
        self.import_state(safe_get(self.storage, EVENT_ENGINE_STATE_KEY))

    def import_state(self, document: Any, rehydrate: bool = True) -> None:
        """Replace engine state from a document (checkpoint or storage)."""
        scheduler_state: Any = {}
        progress = CampaignProgress(id=self.config.campaign_id)
        if isinstance(document, dict):
            scheduler_state = document.get("scheduler") or {}
            try:
                progress = CampaignProgress.model_validate(document.get("campaignProgress") or {})
            except ValidationError as exc:
                logger.warning("Discarding malformed campaign progress: %s", exc)
                progress = CampaignProgress(id=self.config.campaign_id)
        elif document is not None:
            logger.warning("Discarding malformed event engine state of type %s", type(document).__name__)

        if progress.id != self.config.campaign_id:
            progress = CampaignProgress(id=self.config.campaign_id)
        progress.executed = progress.executed[-CAMPAIGN_EXECUTED_LIMIT:]

        self.scheduler.replace_state(scheduler_state, silent=True)
        self.campaign_progress = progress
        if rehydrate:
            self.rehydrate()

    def rehydrate(self) -> None:
        """Re-run apply/on_enqueue handlers so game flags match restored records."""
        handlers = self.scheduler.handlers
        for modifier in self.scheduler.active_modifiers():
            handlers.modifier_handler(modifier.origin_card_id, modifier.id).apply(modifier)
        for entry in self.scheduler.queued_effects():
            handlers.queue_handler(entry.card_id).on_enqueue(entry)

    def reset(self) -> None:
        """Clear all events for a new game."""
        self.scheduler.clear_all(silent=True)
        self.campaign_progress = CampaignProgress(id=self.config.campaign_id)
        self.persist()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def build_context(self, night_number: int, script_step: Optional[CampaignStep] = None) -> EventContext:
        return EventContext(
            scheduler=self.scheduler,
            storage=self.storage,
            config=self.config,
            trackers=self._get_trackers(),
            night_number=night_number,
            rng=self.rng,
            script_step=script_step.model_dump(mode="json") if script_step else None,
        )

    def execute_event_card(
        self,
        card: EventCard,
        trigger: TriggerResult,
        night_number: int,
        script_step: Optional[CampaignStep] = None,
        report: Optional[NightEventsReport] = None,
    ) -> EffectOutcome:
        """Run a triggered card's effect and record the outcome to history."""
        context = self.build_context(night_number, script_step)
        outcome = card.effect(context, trigger)
        meta = outcome.meta or trigger.history_meta()
        if outcome.skipped and outcome.reason:
            meta = {**meta, "skipped": outcome.reason}
        self.scheduler.record_history(
            {
                "night": night_number,
                "card_id": card.card_id.value,
                "label": card.label,
                "meta": meta,
                "narrator_note": outcome.narrator_note,
                "script_step": context.script_step,
            }
        )
        if report is not None:
            if outcome.skipped:
                report.skipped[card.card_id.value] = outcome.reason or "skipped"
            else:
                report.triggered.append(card.card_id.value)
            if outcome.log is not None:
                report.logs.append(outcome.log)
            if outcome.message:
                report.messages.append(outcome.message)
            if outcome.narrator_note:
                report.narrator_notes.append(outcome.narrator_note)
        logger.info("Night %d event %s: %s", night_number, card.card_id.value,
                    outcome.reason if outcome.skipped else "applied")
        return outcome

    def trigger_night_events(self, night_counter: int) -> NightEventsReport:
        """Expire stale modifiers, then evaluate scripted and random events.

        ``night_counter`` is the number of the night that just ended; events
        are evaluated for the upcoming one.
        """
        upcoming = night_counter + 1
        report = NightEventsReport(night=upcoming)
        report.expired = self.scheduler.clear_expired_modifiers(upcoming)

        if not self.config.random_events_enabled:
            self.persist()
            return report

        forced: set[str] = set()
        campaign = self.active_campaign
        if campaign is not None:
            for step in campaign.script:
                if step.night != upcoming or step.key in self.campaign_progress.executed:
                    continue
                card = find_card(self.cards, step.event_id.value)
                if card is None:
                    continue
                forced.add(card.card_id.value)
                trigger = TriggerResult(
                    triggered=True,
                    reason="script",
                    meta={"forced": True, "script": step.model_dump(mode="json")},
                )
                self.execute_event_card(card, trigger, upcoming, script_step=step, report=report)
                self.mark_campaign_step_executed(step)

        deck_configs = resolve_deck_configs(self.config, campaign)
        for entry in build_night_deck_entries(self.cards, deck_configs):
            card_id = entry.card.card_id.value
            if card_id in forced:
                continue
            context = self.build_context(upcoming)
            trigger = evaluate_event_card(entry.card, entry.weight, context, self.rng)
            if trigger.triggered:
                self.execute_event_card(entry.card, trigger, upcoming, report=report)
            else:
                report.skipped[card_id] = trigger.reason or "not-triggered"
                if trigger.reason != "disabled":
                    self.scheduler.record_history(
                        {
                            "night": upcoming,
                            "card_id": card_id,
                            "label": entry.card.label,
                            "meta": trigger.history_meta(),
                        }
                    )

        self.persist()
        return report

    def activate(self, card_id: str, night_number: int) -> Optional[EffectOutcome]:
        """Force a card for ``night_number`` (narrator override)."""
        card = find_card(self.cards, card_id)
        if card is None:
            return None
        trigger = TriggerResult(triggered=True, reason="manual", meta={"forced": True})
        return self.execute_event_card(card, trigger, night_number)
