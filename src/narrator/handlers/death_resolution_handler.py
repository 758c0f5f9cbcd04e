"""DeathResolution handler.

Every death in the game goes through here so that the follow-up effects are
applied in one place:
- lovers die with their partner (transitively)
- night deaths are recorded as the night's victims
- a hunter with an unused shot is flagged for revenge
- a ghost dying for the first time may leave one message
"""

import logging

from narrator.engine.game_state import GameState
from narrator.events.game_events import ActionType, DeathCause, LogItem
from narrator.handlers.base import HandlerResult
from narrator.models.player import Role

logger = logging.getLogger(__name__)


_CAUSE_TEXT = {
    DeathCause.WEREWOLF_KILL: "was killed by the werewolves",
    DeathCause.POISON: "was poisoned by the witch",
    DeathCause.LYNCH: "was lynched",
    DeathCause.SCAPEGOAT: "was sacrificed as the scapegoat",
    DeathCause.SPOTLIGHT: "was accused a second time and leaves the spotlight for good",
    DeathCause.HUNTER_SHOT: "was shot by the hunter",
    DeathCause.ADMIN: "was removed by the narrator",
}


class DeathResolutionHandler:
    """Kill a player and resolve everything their death sets off."""

    def __call__(
        self,
        state: GameState,
        seat: int,
        cause: DeathCause,
        at_night: bool = False,
    ) -> HandlerResult:
        """Kill ``seat`` with its lover cascade.

        Args:
            state: Game state to mutate
            seat: Player to kill
            cause: Why the player dies
            at_night: Night deaths join ``current_night_victims`` and defer
                the hunter's shot to the next morning

        Returns:
            HandlerResult listing every death (empty if ``seat`` was not alive)
        """
        result = HandlerResult()
        records = state.kill_with_lovers(seat, cause)
        if not records:
            return HandlerResult.skipped(debug_info=f"Seat {seat} is not alive")

        trackers = state.trackers
        for record in records:
            name = state.name_of(record.seat)
            if record.cause == DeathCause.LOVER:
                text = f"{name} dies of a broken heart for {state.name_of(record.source)}."
            else:
                text = f"{name} {_CAUSE_TEXT.get(record.cause, 'died')}."
            result.messages.append(text)
            result.logs.append(LogItem(type=ActionType.DEATH, label=record.cause.value, detail=name))

            if at_night and record.seat not in state.current_night_victims:
                state.current_night_victims.append(record.seat)

            role = state.role_of(record.seat)
            if role == Role.HUNTER and not trackers.hunter_shot_used:
                if at_night:
                    if record.seat not in trackers.hunter_died_last_night:
                        trackers.hunter_died_last_night.append(record.seat)
                elif record.seat not in result.pending_hunters:
                    result.pending_hunters.append(record.seat)

            if role == Role.GHOST and not trackers.ghost_message_sent:
                trackers.ghost_message_sent = True
                result.messages.append(f"The ghost of {name} may leave one message for the living.")
                result.logs.append(LogItem(type=ActionType.INFO, label="Ghost message", detail=name))

        result.deaths = records
        logger.debug("Resolved deaths %s", [str(record) for record in records])
        return result
