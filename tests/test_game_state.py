"""Tests for GameState - seats, deaths, lovers and win conditions."""

import pytest

from narrator.engine import GameState
from narrator.events.game_events import DeathCause, Winner
from narrator.models import Job, Role, SetupResult


# ============================================================================
# Helper functions
# ============================================================================

def create_test_state(roles: list[Role], jobs: dict[int, list[Job]] | None = None) -> GameState:
    """State with one player per role, named after the seat."""
    players = [f"P{seat}" for seat in range(len(roles))]
    seat_jobs = [list((jobs or {}).get(seat, [])) for seat in range(len(roles))]
    return GameState.new(players, SetupResult(roles=roles, jobs=seat_jobs))


# ============================================================================
# Test fixtures
# ============================================================================

@pytest.fixture
def state() -> GameState:
    """Six players: two werewolves, seer, witch, hunter, villager."""
    return create_test_state([
        Role.WEREWOLF,
        Role.WEREWOLF,
        Role.SEER,
        Role.WITCH,
        Role.HUNTER,
        Role.VILLAGER,
    ])


# ============================================================================
# Creation
# ============================================================================

class TestGameStateCreation:
    """Tests for building a state from a setup result."""

    def test_everyone_starts_alive(self, state: GameState):
        assert state.living_seats() == [0, 1, 2, 3, 4, 5]
        assert state.dead == []
        assert state.winner is None

    def test_jobs_are_padded_to_player_count(self):
        """Missing job lists are filled with empty ones."""
        state = GameState(players=["a", "b", "c"], roles=[Role.WEREWOLF, Role.SEER, Role.VILLAGER])
        assert state.jobs == [[], [], []]

    def test_role_count_mismatch_is_rejected(self):
        with pytest.raises(ValueError):
            GameState(players=["a", "b"], roles=[Role.WEREWOLF])

    def test_executioner_target_is_copied(self):
        setup = SetupResult(
            roles=[Role.EXECUTIONER, Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER],
            jobs=[[], [], [], []],
            executioner_target=2,
        )
        state = GameState.new(["a", "b", "c", "d"], setup)
        assert state.executioner_target == 2

    def test_duplicate_names_are_allowed(self):
        state = GameState.new(["Sam", "Sam"], SetupResult(roles=[Role.WEREWOLF, Role.VILLAGER], jobs=[[], []]))
        assert state.name_of(0) == state.name_of(1) == "Sam"


# ============================================================================
# Queries
# ============================================================================

class TestGameStateQueries:
    """Tests for seat and role lookups."""

    def test_invalid_seats(self, state: GameState):
        assert not state.is_valid_seat(-1)
        assert not state.is_valid_seat(6)
        assert not state.is_alive(99)
        assert state.name_of(99) == "#99"
        assert state.role_of(99) is None

    def test_holders_of_living_only(self, state: GameState):
        state.kill(0)
        assert state.holders_of(Role.WEREWOLF) == [1]
        assert state.holders_of(Role.WEREWOLF, living_only=False) == [0, 1]

    def test_job_holders(self):
        state = create_test_state([Role.WEREWOLF, Role.VILLAGER, Role.SEER], jobs={1: [Job.DOCTOR]})
        assert state.job_holders(Job.DOCTOR) == [1]
        state.kill(1)
        assert state.job_holders(Job.DOCTOR) == []
        assert state.job_holders(Job.DOCTOR, living_only=False) == [1]

    def test_cursed_is_not_a_werewolf(self):
        state = create_test_state([Role.CURSED, Role.WEREWOLF, Role.VILLAGER])
        assert not state.is_werewolf(0)
        assert state.is_werewolf(1)

    def test_role_counts(self, state: GameState):
        state.kill(5)
        assert state.role_counts()["WEREWOLF"] == 2
        assert "VILLAGER" not in state.role_counts()
        assert state.role_counts(living_only=False)["VILLAGER"] == 1


# ============================================================================
# Deaths and lovers
# ============================================================================

class TestDeaths:
    """Tests for kill, revive and the lover cascade."""

    def test_kill_is_idempotent(self, state: GameState):
        assert state.kill(2)
        assert not state.kill(2)
        assert state.dead == [2]

    def test_revive_requires_dead_player(self, state: GameState):
        assert not state.revive(2)
        state.kill(2)
        assert state.revive(2)
        assert state.is_alive(2)

    def test_lover_dies_with_partner(self, state: GameState):
        state.lovers.append((2, 5))
        records = state.kill_with_lovers(2, DeathCause.WEREWOLF_KILL)

        assert [record.seat for record in records] == [2, 5]
        assert records[0].cause == DeathCause.WEREWOLF_KILL
        assert records[1].cause == DeathCause.LOVER
        assert records[1].source == 2

    def test_lover_cascade_is_transitive(self, state: GameState):
        state.lovers.extend([(2, 3), (3, 4)])
        records = state.kill_with_lovers(2, DeathCause.LYNCH)
        assert [record.seat for record in records] == [2, 3, 4]

    def test_dead_partner_is_not_killed_twice(self, state: GameState):
        state.lovers.append((2, 5))
        state.kill(5)
        records = state.kill_with_lovers(2, DeathCause.POISON)
        assert [record.seat for record in records] == [2]
        assert state.dead == [5, 2]

    def test_killing_dead_player_returns_nothing(self, state: GameState):
        state.kill(2)
        assert state.kill_with_lovers(2, DeathCause.LYNCH) == []


# ============================================================================
# Victory
# ============================================================================

class TestVictory:
    """Tests for win conditions and their order."""

    def test_game_continues(self, state: GameState):
        assert state.is_game_over() == (False, None)
        assert not state.game_over

    def test_village_wins_without_werewolves(self, state: GameState):
        state.kill(0)
        state.kill(1)
        assert state.is_game_over() == (True, Winner.VILLAGE)

    def test_werewolves_win_at_parity(self, state: GameState):
        for seat in (2, 3):
            state.kill(seat)
        # 2 werewolves against 2 others
        assert state.is_game_over() == (True, Winner.WEREWOLVES)

    def test_cursed_counts_as_villager_until_bitten(self):
        state = create_test_state([Role.WEREWOLF, Role.CURSED, Role.VILLAGER])
        assert state.is_game_over() == (False, None)
        state.roles[1] = Role.WEREWOLF
        assert state.is_game_over() == (True, Winner.WEREWOLVES)

    def test_lovers_win_when_only_lovers_remain(self, state: GameState):
        state.lovers.append((1, 2))
        for seat in (0, 3, 4, 5):
            state.kill(seat)
        assert state.is_game_over() == (True, Winner.LOVERS)

    def test_executioner_wins_when_target_dies(self):
        setup = SetupResult(
            roles=[Role.EXECUTIONER, Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER, Role.SEER],
            jobs=[[] for _ in range(5)],
            executioner_target=2,
        )
        state = GameState.new([f"P{seat}" for seat in range(5)], setup)
        state.kill(2)
        assert state.is_game_over() == (True, Winner.EXECUTIONER)

    def test_dead_executioner_does_not_win(self):
        setup = SetupResult(
            roles=[Role.EXECUTIONER, Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER, Role.SEER],
            jobs=[[] for _ in range(5)],
            executioner_target=2,
        )
        state = GameState.new([f"P{seat}" for seat in range(5)], setup)
        state.kill(0)
        state.kill(2)
        assert state.is_game_over() == (False, None)

    def test_executioner_is_checked_before_village(self):
        setup = SetupResult(
            roles=[Role.EXECUTIONER, Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER],
            jobs=[[] for _ in range(4)],
            executioner_target=1,
        )
        state = GameState.new(["a", "b", "c", "d"], setup)
        state.kill(1)
        assert state.is_game_over() == (True, Winner.EXECUTIONER)

    def test_peacemaker_wins_after_four_peaceful_days(self):
        state = create_test_state([Role.PEACEMAKER, Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER])
        state.peace_days = 3
        assert state.is_game_over() == (False, None)
        state.peace_days = 4
        assert state.is_game_over() == (True, Winner.PEACEMAKER)


# ============================================================================
# Snapshots
# ============================================================================

class TestSnapshots:
    """Tests for snapshot and restore."""

    def test_snapshot_is_independent_copy(self, state: GameState):
        snapshot = state.snapshot()
        state.kill(2)
        state.trackers.witch_heal_remaining = 0

        restored = GameState.from_snapshot(snapshot)
        assert restored.is_alive(2)
        assert restored.trackers.witch_heal_remaining == 1

    def test_snapshot_keeps_lovers_and_trackers(self, state: GameState):
        state.lovers.append((1, 4))
        state.trackers.celebrity_accusations[3] = 1
        restored = GameState.from_snapshot(state.snapshot())
        assert restored.lovers == [(1, 4)]
        assert restored.trackers.celebrity_accusations == {3: 1}
