"""Tests for the async NarratorGame driver."""

import random
from typing import Optional

import pytest

from narrator.ai import StubNarrator
from narrator.config import EventConfig
from narrator.engine import CollectingValidator
from narrator.engine.game_session import GameSession
from narrator.engine.narrator_game import NarratorGame
from narrator.events.game_events import GamePhase, Winner
from narrator.exceptions import MaxRetriesExceededError
from narrator.models import Role, SetupResult
from narrator.storage import InMemoryStorage
from narrator.ui.choices import ChoiceSpec


# ============================================================================
# Helper types and functions
# ============================================================================

SMALL_ROLES = [Role.WEREWOLF, Role.SEER, Role.VILLAGER, Role.VILLAGER, Role.VILLAGER]
STANDARD_ROLES = [
    Role.WEREWOLF, Role.WEREWOLF, Role.SEER, Role.WITCH,
    Role.HUNTER, Role.VILLAGER, Role.VILLAGER, Role.VILLAGER,
]

# Seer looks at 2, wolf kills 4, P1 becomes mayor, P0 is accused and lynched
VILLAGE_WIN_SCRIPT = ["2", "4", "1", "0", "0:3"]


class ScriptedNarrator:
    """Narrator answering from a fixed script and recording every call."""

    def __init__(self, answers: list[str], default: str = ""):
        self.answers = list(answers)
        self.default = default
        self.calls: list[tuple[str, Optional[str], Optional[ChoiceSpec]]] = []

    async def decide(self, prompt: str, hint: Optional[str] = None, choices: Optional[ChoiceSpec] = None) -> str:
        self.calls.append((prompt, hint, choices))
        return self.answers.pop(0) if self.answers else self.default


def create_test_session(seed: int = 7, event_config: Optional[EventConfig] = None) -> GameSession:
    return GameSession(
        storage=InMemoryStorage(),
        event_config=event_config or EventConfig(random_events_enabled=False, first_night_shield=False),
        rng=random.Random(seed),
    )


def create_setup(roles: list[Role]) -> SetupResult:
    return SetupResult(roles=roles, jobs=[[] for _ in roles])


def player_names(count: int) -> list[str]:
    return [f"P{seat}" for seat in range(count)]


# ============================================================================
# Scripted games
# ============================================================================

class TestScriptedGame:
    """Tests driving a game with known answers."""

    @pytest.mark.asyncio
    async def test_village_wins(self):
        session = create_test_session()
        validator = CollectingValidator()
        game = NarratorGame(session, ScriptedNarrator(VILLAGE_WIN_SCRIPT), validator=validator)

        actions, winner = await game.run(player_names(5), setup=create_setup(SMALL_ROLES))

        assert winner == Winner.VILLAGE
        assert session.phase == GamePhase.GAME_OVER
        assert validator.get_violations() == []
        assert actions[0].sequence < actions[-1].sequence
        assert actions[-1].label == "Game finished"

    @pytest.mark.asyncio
    async def test_finished_game_is_saved(self):
        session = create_test_session()
        game = NarratorGame(session, ScriptedNarrator(VILLAGE_WIN_SCRIPT))
        await game.run(player_names(5), setup=create_setup(SMALL_ROLES))

        saved = session.sessions.list()
        assert len(saved) == 1
        assert saved[0]["metadata"]["winner"] == Winner.VILLAGE.value

    @pytest.mark.asyncio
    async def test_announcements_reach_callback(self):
        session = create_test_session()
        received: list[str] = []
        game = NarratorGame(session, ScriptedNarrator(VILLAGE_WIN_SCRIPT), on_message=received.append)
        await game.run(player_names(5), setup=create_setup(SMALL_ROLES))

        assert received == game.transcript
        assert "Died last night: P4." in received
        assert received[-1] == "Game over: Village win!"

    @pytest.mark.asyncio
    async def test_runs_an_already_started_session(self):
        session = create_test_session()
        session.start_game(player_names(5), setup=create_setup(SMALL_ROLES))
        game = NarratorGame(session, ScriptedNarrator(VILLAGE_WIN_SCRIPT))

        _, winner = await game.run()
        assert winner == Winner.VILLAGE

    @pytest.mark.asyncio
    async def test_without_players(self):
        game = NarratorGame(create_test_session(), ScriptedNarrator([]))
        with pytest.raises(ValueError):
            await game.run()

    @pytest.mark.asyncio
    async def test_day_limit_ends_without_winner(self):
        session = create_test_session()
        game = NarratorGame(session, ScriptedNarrator(["2", "4"]), max_days=0)

        _, winner = await game.run(player_names(5), setup=create_setup(SMALL_ROLES))
        assert winner is None
        assert session.state.day_count == 1
        assert session.action_log.latest().detail == "no winner"


# ============================================================================
# Retries
# ============================================================================

class TestRetries:
    """Tests for rejected answers."""

    @pytest.mark.asyncio
    async def test_rejected_answer_is_asked_again_with_hint(self):
        narrator = ScriptedNarrator(["garbage"] + VILLAGE_WIN_SCRIPT)
        game = NarratorGame(create_test_session(), narrator)
        _, winner = await game.run(player_names(5), setup=create_setup(SMALL_ROLES))

        first_prompt, first_hint, _ = narrator.calls[0]
        second_prompt, second_hint, _ = narrator.calls[1]
        assert first_hint is None
        assert second_hint
        assert second_prompt == first_prompt
        assert winner == Winner.VILLAGE

    @pytest.mark.asyncio
    async def test_required_step_gives_up(self):
        narrator = ScriptedNarrator([], default="garbage")
        game = NarratorGame(create_test_session(), narrator, max_retries=2)

        with pytest.raises(MaxRetriesExceededError):
            await game.run(player_names(5), setup=create_setup(SMALL_ROLES))
        assert len(narrator.calls) == 2

    @pytest.mark.asyncio
    async def test_optional_step_is_skipped(self):
        roles = [Role.WEREWOLF, Role.SEER, Role.WITCH, Role.VILLAGER, Role.VILLAGER, Role.VILLAGER]
        # The witch step allows skipping; three bad answers pass it
        narrator = ScriptedNarrator(["2", "4", "bad", "bad", "bad"])
        session = create_test_session()
        game = NarratorGame(session, narrator, max_days=0)

        await game.run(player_names(6), setup=create_setup(roles))
        assert session.state.dead == [4]
        assert session.state.trackers.witch_heal_remaining == 1


# ============================================================================
# Simulated games
# ============================================================================

class TestStubNarratorGames:
    """Full games with the random stub narrator."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    async def test_games_finish_without_violations(self, seed: int):
        session = create_test_session(seed, event_config=EventConfig())
        validator = CollectingValidator()
        game = NarratorGame(session, StubNarrator(seed=seed), validator=validator)

        _, winner = await game.run(player_names(8), setup=create_setup(STANDARD_ROLES))

        assert validator.get_violations() == []
        if winner is not None:
            assert session.state.winner == winner

    @pytest.mark.asyncio
    async def test_same_seed_same_game(self):
        async def play(seed: int) -> list[str]:
            session = create_test_session(seed, event_config=EventConfig())
            game = NarratorGame(session, StubNarrator(seed=seed))
            actions, _ = await game.run(player_names(8), setup=create_setup(STANDARD_ROLES))
            return [f"{entry.label}|{entry.detail}" for entry in actions]

        assert await play(11) == await play(11)

    @pytest.mark.asyncio
    async def test_random_role_assignment(self):
        session = create_test_session(21, event_config=EventConfig())
        game = NarratorGame(session, StubNarrator(seed=21))
        await game.run(player_names(10))

        assert len(session.state.roles) == 10
        assert session.state.role_counts(living_only=False)[Role.WEREWOLF.value] >= 1
