"""Voting handler for the day phase.

The narrator enters how many votes each accused player received. Votes a
candidate receives count double if the candidate is the mayor, and double
again if the candidate is in the celebrity spotlight. Only candidates with
more than zero weighted votes can be lynched.

Resolution, in order:
1. A celebrity among the top candidates is accused again; a second
   accusation eliminates them immediately and ends the trial.
2. A tie with a living scapegoat sacrifices the scapegoat.
3. A single top candidate is lynched, unless the first-night shield fires
   on day 1.
4. Otherwise (zero votes, or a tie without a scapegoat) nobody dies; there
   is no automatic tie-break.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from narrator.engine.game_state import GameState
from narrator.events.game_events import ActionType, DeathCause, LogItem, StepStatus
from narrator.handlers.accusation_handler import AccusationHandler
from narrator.handlers.base import HandlerContext, HandlerResult, format_seats
from narrator.handlers.death_resolution_handler import DeathResolutionHandler
from narrator.models.player import Role
from narrator.ui.choices import ChoiceSpec, make_tally_choice, parse_tally_answer

logger = logging.getLogger(__name__)


class VoteTally(BaseModel):
    """Weighted vote counts and the top candidates."""

    raw: dict[int, int] = Field(default_factory=dict)
    weighted: dict[int, int] = Field(default_factory=dict)
    max_votes: int = 0
    candidates: list[int] = Field(default_factory=list)


class VoteResult(HandlerResult):
    """Vote outcome; ``eliminated`` is empty when nobody died."""

    tally: VoteTally = Field(default_factory=VoteTally)
    eliminated: list[int] = Field(default_factory=list)


def tally_votes(state: GameState, counts: dict[int, int], ballot: list[int]) -> VoteTally:
    """Weight the raw counts of living ballot candidates and find the maximum."""
    tally = VoteTally()
    trackers = state.trackers
    for seat in ballot:
        if not state.is_alive(seat):
            continue
        count = max(int(counts.get(seat, 0)), 0)
        weight = 1
        if trackers.has_spotlight(seat):
            weight *= 2
        if state.mayor == seat:
            weight *= 2
        tally.raw[seat] = count
        tally.weighted[seat] = count * weight

    for seat, count in tally.weighted.items():
        if count > tally.max_votes:
            tally.max_votes = count
            tally.candidates = [seat]
        elif count == tally.max_votes and count > 0:
            tally.candidates.append(seat)
    return tally


class VotingHandler:
    """Handler for DAY_VOTE."""

    def __init__(
        self,
        accusation: Optional[AccusationHandler] = None,
        death_resolution: Optional[DeathResolutionHandler] = None,
    ):
        self.death_resolution = death_resolution or DeathResolutionHandler()
        self.accusation = accusation or AccusationHandler(self.death_resolution)

    def ballot(self, context: HandlerContext) -> list[int]:
        return [seat for seat in dict.fromkeys(context.accused) if context.state.is_alive(seat)]

    def build_choice_spec(self, context: HandlerContext) -> Optional[ChoiceSpec]:
        ballot = self.ballot(context)
        if not ballot:
            return None
        return make_tally_choice(
            prompt="How many votes did each accused player get? (seat:votes, ...)",
            seats=ballot,
            seat_info=context.seat_info(ballot),
        )

    def __call__(self, context: HandlerContext, selection: Optional[str]) -> VoteResult:
        state = context.state
        ballot = self.ballot(context)
        if not ballot:
            state.peace_days += 1
            return VoteResult(
                status=StepStatus.SKIPPED,
                messages=["Nobody living is left on the ballot. Nobody is lynched."],
            )

        counts = parse_tally_answer(selection)
        if counts is None:
            return VoteResult(status=StepStatus.REJECTED, hint="Enter votes as 'seat:count', e.g. '2:3,5:1'.")
        unknown = [seat for seat in counts if seat not in ballot]
        if unknown:
            return VoteResult(
                status=StepStatus.REJECTED,
                hint=f"Only accused players can receive votes; not {unknown}.",
            )
        return self.resolve(context, tally_votes(state, counts, ballot))

    def resolve(self, context: HandlerContext, tally: VoteTally) -> VoteResult:
        """Apply the outcome of a counted vote."""
        state = context.state
        trackers = state.trackers
        result = VoteResult(tally=tally)
        result.logs.append(LogItem(
            type=ActionType.DAY,
            label="Votes counted",
            detail=", ".join(f"{state.name_of(seat)}={count}" for seat, count in tally.weighted.items()),
        ))

        spotlight = self.accusation.register_accusations(state, tally.candidates)
        result.merge(spotlight)
        if spotlight.eliminated:
            result.eliminated = list(spotlight.eliminated)
            return result

        scapegoats = state.holders_of(Role.SCAPEGOAT)
        if len(tally.candidates) > 1 and scapegoats:
            scapegoat = scapegoats[0]
            result.messages.append(
                f"Tie between {format_seats(state, tally.candidates)}. "
                f"{state.name_of(scapegoat)} is sacrificed as the scapegoat."
            )
            result.merge(self.death_resolution(state, scapegoat, DeathCause.SCAPEGOAT))
            state.peace_days = 0
            result.eliminated = [scapegoat]
            return result

        if len(tally.candidates) == 1:
            target = tally.candidates[0]
            name = state.name_of(target)
            shield = (
                context.config.first_night_shield
                and not trackers.first_night_shield_used
                and state.day_count == 1
                and state.night_counter <= 1
            )
            if shield:
                trackers.first_night_shield_used = True
                state.peace_days += 1
                result.messages.append(f"First-night shield: {name} survives the lynching.")
                result.logs.append(LogItem(type=ActionType.EVENT, label="First-night shield", detail=name))
                return result

            result.messages.append(f"{name} was lynched with {tally.max_votes} votes.")
            result.merge(self.death_resolution(state, target, DeathCause.LYNCH))
            state.peace_days = 0
            result.eliminated = [target]
            logger.info("Lynched seat %d", target)
            return result

        state.peace_days += 1
        if tally.candidates:
            result.messages.append(
                f"Tie between {format_seats(state, tally.candidates)}. Nobody is lynched."
            )
        else:
            result.messages.append("Nobody received enough votes. Nobody is lynched.")
        result.logs.append(LogItem(type=ActionType.DAY, label="No lynching"))
        return result
