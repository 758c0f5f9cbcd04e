"""Tests for the day handlers: mayor, accusations, votes and the hunter."""

import pytest

from narrator.config import EventConfig
from narrator.engine import GameState
from narrator.events.game_events import DeathCause, StepStatus
from narrator.handlers import (
    AccusationHandler,
    HandlerContext,
    HunterHandler,
    MayorElectionHandler,
    VotingHandler,
    tally_votes,
)
from narrator.models import Role, SetupResult
from narrator.ui.choices import ChoiceType


# ============================================================================
# Helper functions
# ============================================================================

def create_test_state(roles: list[Role], day: int = 2) -> GameState:
    players = [f"P{seat}" for seat in range(len(roles))]
    state = GameState.new(players, SetupResult(roles=roles, jobs=[[] for _ in roles]))
    state.night_counter = day
    state.day_count = day
    return state


def create_context(state: GameState, accused: list[int] | None = None, shield: bool = False) -> HandlerContext:
    return HandlerContext(
        state=state,
        config=EventConfig(random_events_enabled=False, first_night_shield=shield),
        accused=accused or [],
    )


@pytest.fixture
def state() -> GameState:
    return create_test_state([
        Role.WEREWOLF,
        Role.WEREWOLF,
        Role.SEER,
        Role.CELEBRITY,
        Role.HUNTER,
        Role.VILLAGER,
        Role.VILLAGER,
        Role.VILLAGER,
    ])


# ============================================================================
# Mayor election
# ============================================================================

class TestMayorElection:
    """Tests for electing the mayor."""

    def test_elects_living_player(self, state: GameState):
        result = MayorElectionHandler()(create_context(state), "2")
        assert result.accepted
        assert state.mayor == 2

    def test_dead_player_cannot_be_mayor(self, state: GameState):
        state.kill(2)
        result = MayorElectionHandler()(create_context(state), "2")
        assert result.status == StepStatus.REJECTED
        assert state.mayor is None


# ============================================================================
# Accusations
# ============================================================================

class TestAccusation:
    """Tests for accusations and the celebrity spotlight."""

    def test_accused_go_to_vote(self, state: GameState):
        result = AccusationHandler()(create_context(state), "0,5")
        assert result.accused == [0, 5]
        assert result.eliminated == []

    def test_no_accusation_is_a_peaceful_day(self, state: GameState):
        result = AccusationHandler()(create_context(state), "")
        assert result.accepted
        assert result.accused == []
        assert state.peace_days == 1

    def test_unreadable_selection(self, state: GameState):
        result = AccusationHandler()(create_context(state), "zero")
        assert result.status == StepStatus.REJECTED

    def test_first_accusation_spotlights_celebrity(self, state: GameState):
        result = AccusationHandler()(create_context(state), "3")
        assert state.trackers.has_spotlight(3)
        assert state.trackers.celebrity_accusations == {3: 1}
        assert result.accused == [3]

    def test_second_accusation_eliminates_celebrity(self, state: GameState):
        handler = AccusationHandler()
        handler(create_context(state), "3")
        state.peace_days = 2
        result = handler(create_context(state), "3,5")

        assert result.eliminated == [3]
        assert result.accused == []
        assert not state.is_alive(3)
        assert result.deaths[0].cause == DeathCause.SPOTLIGHT
        assert state.peace_days == 0

    def test_repeated_seat_counts_once(self, state: GameState):
        AccusationHandler()(create_context(state), "3,3")
        assert state.trackers.celebrity_accusations == {3: 1}
        assert state.is_alive(3)


# ============================================================================
# Vote counting
# ============================================================================

class TestTallyVotes:
    """Tests for weighting and top candidates."""

    def test_mayor_votes_count_double(self, state: GameState):
        state.mayor = 5
        tally = tally_votes(state, {5: 2, 6: 3}, [5, 6])
        assert tally.weighted == {5: 4, 6: 3}
        assert tally.candidates == [5]

    def test_spotlight_and_mayor_stack(self, state: GameState):
        state.mayor = 3
        state.trackers.celebrity_spotlight.append(3)
        tally = tally_votes(state, {3: 1}, [3])
        assert tally.weighted == {3: 4}

    def test_zero_votes_have_no_candidates(self, state: GameState):
        tally = tally_votes(state, {5: 0, 6: 0}, [5, 6])
        assert tally.candidates == []
        assert tally.max_votes == 0

    def test_tie(self, state: GameState):
        tally = tally_votes(state, {5: 2, 6: 2}, [5, 6])
        assert tally.candidates == [5, 6]

    def test_dead_candidates_are_ignored(self, state: GameState):
        state.kill(6)
        tally = tally_votes(state, {5: 1, 6: 9}, [5, 6])
        assert tally.candidates == [5]


# ============================================================================
# Voting
# ============================================================================

class TestVotingHandler:
    """Tests for resolving the lynch vote."""

    def test_choice_is_tally_over_ballot(self, state: GameState):
        spec = VotingHandler().build_choice_spec(create_context(state, accused=[0, 5]))
        assert spec.choice_type == ChoiceType.TALLY
        assert spec.seats() == [0, 5]

    def test_no_ballot_has_no_choice(self, state: GameState):
        assert VotingHandler().build_choice_spec(create_context(state)) is None

    def test_single_top_candidate_is_lynched(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[0, 5]), "0:4,5:2")
        assert result.eliminated == [0]
        assert not state.is_alive(0)
        assert result.deaths[0].cause == DeathCause.LYNCH

    def test_tie_without_scapegoat_lynches_nobody(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[0, 5]), "0:2,5:2")
        assert result.accepted
        assert result.eliminated == []
        assert state.dead == []
        assert state.peace_days == 1

    def test_tie_sacrifices_scapegoat(self):
        state = create_test_state([Role.WEREWOLF, Role.SCAPEGOAT, Role.VILLAGER, Role.VILLAGER, Role.SEER])
        result = VotingHandler()(create_context(state, accused=[0, 2]), "0:1,2:1")
        assert result.eliminated == [1]
        assert result.deaths[0].cause == DeathCause.SCAPEGOAT
        assert state.is_alive(0) and state.is_alive(2)

    def test_zero_votes_lynch_nobody(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[0]), "0:0")
        assert result.eliminated == []
        assert state.dead == []

    def test_votes_for_unaccused_are_rejected(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[0]), "5:3")
        assert result.status == StepStatus.REJECTED

    def test_malformed_tally_is_rejected(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[0]), "0=3")
        assert result.status == StepStatus.REJECTED

    def test_celebrity_on_top_is_accused_again(self, state: GameState):
        handler = VotingHandler()
        handler.accusation.register_accusations(state, [3])
        result = handler(create_context(state, accused=[3, 5]), "3:2,5:1")
        assert result.eliminated == [3]
        assert result.deaths[0].cause == DeathCause.SPOTLIGHT

    def test_first_night_shield_spares_day_one_lynch(self):
        state = create_test_state([Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER, Role.SEER], day=1)
        result = VotingHandler()(create_context(state, accused=[1], shield=True), "1:3")
        assert state.is_alive(1)
        assert result.eliminated == []
        assert state.trackers.first_night_shield_used

    def test_lynched_hunter_is_pending(self, state: GameState):
        result = VotingHandler()(create_context(state, accused=[4]), "4:3")
        assert result.pending_hunters == [4]


# ============================================================================
# Hunter
# ============================================================================

class TestHunterHandler:
    """Tests for the hunter's revenge shot."""

    def test_shot_kills_target(self, state: GameState):
        state.kill(4)
        result = HunterHandler()(create_context(state), "0", 4)
        assert not state.is_alive(0)
        assert result.deaths[0].cause == DeathCause.HUNTER_SHOT
        assert state.trackers.hunter_shot_used

    def test_hunter_may_hold_fire(self, state: GameState):
        state.kill(4)
        result = HunterHandler()(create_context(state), "", 4)
        assert result.accepted
        assert state.dead == [4]
        assert state.trackers.hunter_shot_used

    def test_hunter_cannot_target_self(self, state: GameState):
        result = HunterHandler()(create_context(state), "4", 4)
        assert result.status == StepStatus.REJECTED

    def test_shot_is_once_per_game(self, state: GameState):
        state.trackers.hunter_shot_used = True
        result = HunterHandler()(create_context(state), "0", 4)
        assert result.status == StepStatus.SKIPPED
        assert state.is_alive(0)
