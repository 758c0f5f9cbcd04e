"""Tests for choice specs, the stub narrator and the console narrator."""

from io import StringIO

import pytest
from rich.console import Console

from narrator.ai import StubNarrator
from narrator.ui import (
    ChoiceType,
    make_action_choice,
    make_seat_choice,
    make_tally_choice,
    make_yes_no_choice,
    parse_seat_answer,
    parse_tally_answer,
)
from narrator.ui.interactive import InteractiveNarrator


# ============================================================================
# Helper functions
# ============================================================================

def create_console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=100, force_terminal=False), buffer


def scripted_input(monkeypatch, answers: list[str]) -> list[str]:
    """Feed ``answers`` to every rich prompt; returns the questions asked."""
    asked: list[str] = []
    remaining = list(answers)

    def fake_ask(prompt, *args, **kwargs):
        asked.append(str(prompt))
        return remaining.pop(0)

    monkeypatch.setattr("narrator.ui.interactive.Prompt.ask", fake_ask)
    return asked


# ============================================================================
# Answer parsing
# ============================================================================

class TestAnswerParsing:
    """Tests for the raw answer formats."""

    def test_seat_answers(self):
        assert parse_seat_answer("3") == [3]
        assert parse_seat_answer("1, 4,1") == [1, 4]
        assert parse_seat_answer("2 5") == [2, 5]
        assert parse_seat_answer("") == []
        assert parse_seat_answer("skip") == []
        assert parse_seat_answer(None) == []
        assert parse_seat_answer("two") is None

    def test_tally_answers(self):
        assert parse_tally_answer("2:3,5:1") == {2: 3, 5: 1}
        assert parse_tally_answer("2:1,2:2") == {2: 3}
        assert parse_tally_answer("2:-4") == {2: 0}
        assert parse_tally_answer("none") == {}
        assert parse_tally_answer("2") is None
        assert parse_tally_answer("a:b") is None

    def test_format_response(self):
        seats = make_seat_choice("Who?", [1, 2, 3], max_select=2)
        assert seats.format_response(" 1  3 ") == "1,3"
        assert seats.format_response("Pass") == ""

        yes_no = make_yes_no_choice("Sure?")
        assert yes_no.format_response("Y") == "yes"
        assert yes_no.format_response("0") == "no"

        actions = make_action_choice("Do what?", [("heal:2", "Heal P2")])
        assert actions.format_response("heal:2") == "heal:2"

    def test_tally_choice(self):
        spec = make_tally_choice("Votes", [0, 3], seat_info={0: "P0", 3: "P3"})
        assert spec.choice_type == ChoiceType.TALLY
        assert spec.seats() == [0, 3]
        assert spec.get_seat_display(3) == "P3 (#3)"
        assert spec.get_seat_display(9) == "#9"


# ============================================================================
# Stub narrator
# ============================================================================

class TestStubNarrator:
    """Tests for random valid answers."""

    @pytest.mark.asyncio
    async def test_acknowledgement(self):
        narrator = StubNarrator(seed=1)
        assert await narrator.decide("Everyone wakes up.") == ""
        assert narrator.prompts == ["Everyone wakes up."]

    @pytest.mark.asyncio
    async def test_seat_answers_stay_in_bounds(self):
        narrator = StubNarrator(seed=3)
        spec = make_seat_choice("Lovers?", [0, 2, 4, 6], allow_none=False, min_select=2, max_select=2)
        for _ in range(20):
            seats = parse_seat_answer(await narrator.decide("Cupid", choices=spec))
            assert len(seats) == 2
            assert set(seats) <= {0, 2, 4, 6}

    @pytest.mark.asyncio
    async def test_required_choice_is_never_skipped(self):
        narrator = StubNarrator(seed=5, skip_chance=1.0)
        spec = make_seat_choice("Victim?", [1, 2], allow_none=False)
        assert await narrator.decide("Wolves", choices=spec) in ("1", "2")

    @pytest.mark.asyncio
    async def test_optional_choice_can_be_skipped(self):
        narrator = StubNarrator(seed=5, skip_chance=1.0)
        spec = make_seat_choice("Shoot?", [1, 2], allow_none=True)
        assert await narrator.decide("Hunter", choices=spec) == ""

    @pytest.mark.asyncio
    async def test_tally_lists_every_candidate(self):
        narrator = StubNarrator(seed=8, skip_chance=0.0, max_votes=2)
        spec = make_tally_choice("Votes", [1, 4])
        tally = parse_tally_answer(await narrator.decide("Vote", choices=spec))
        assert set(tally) == {1, 4}
        assert all(0 <= count <= 2 for count in tally.values())

    @pytest.mark.asyncio
    async def test_empty_options(self):
        narrator = StubNarrator(seed=1)
        spec = make_action_choice("Witch", [])
        assert await narrator.decide("Witch", choices=spec) == ""

    @pytest.mark.asyncio
    async def test_same_seed_same_answers(self):
        spec = make_seat_choice("Who?", list(range(10)), allow_none=False)
        first, second = StubNarrator(seed=9), StubNarrator(seed=9)
        for _ in range(5):
            assert await first.decide("x", choices=spec) == await second.decide("x", choices=spec)


# ============================================================================
# Interactive narrator
# ============================================================================

class TestInteractiveNarrator:
    """Tests for the rich console narrator with scripted input."""

    @pytest.mark.asyncio
    async def test_single_seat_by_option_number(self, monkeypatch):
        console, _ = create_console()
        scripted_input(monkeypatch, ["2"])
        spec = make_seat_choice("Victim?", [3, 5, 7], allow_none=False)

        answer = await InteractiveNarrator(console=console).decide("Wolves wake", choices=spec)
        assert answer == "5"

    @pytest.mark.asyncio
    async def test_invalid_input_is_asked_again(self, monkeypatch):
        console, buffer = create_console()
        asked = scripted_input(monkeypatch, ["9", "1"])
        spec = make_seat_choice("Victim?", [3, 5], allow_none=False)

        answer = await InteractiveNarrator(console=console).decide("Wolves wake", choices=spec)
        assert answer == "3"
        assert len(asked) == 2
        assert "Invalid selection" in buffer.getvalue()

    @pytest.mark.asyncio
    async def test_skip_seat(self, monkeypatch):
        console, _ = create_console()
        scripted_input(monkeypatch, ["0"])
        spec = make_seat_choice("Protect?", [1, 2], allow_none=True)
        assert await InteractiveNarrator(console=console).decide("Bodyguard", choices=spec) == ""

    @pytest.mark.asyncio
    async def test_multiple_seats(self, monkeypatch):
        console, _ = create_console()
        scripted_input(monkeypatch, ["1 4"])
        spec = make_seat_choice("Lovers?", [1, 2, 4], min_select=2, max_select=2)
        assert await InteractiveNarrator(console=console).decide("Cupid", choices=spec) == "1,4"

    @pytest.mark.asyncio
    async def test_single_by_display_text(self, monkeypatch):
        console, _ = create_console()
        scripted_input(monkeypatch, ["heal p2"])
        spec = make_action_choice("Witch?", [("heal:2", "Heal P2"), ("poison:3", "Poison P3")])
        assert await InteractiveNarrator(console=console).decide("Witch", choices=spec) == "heal:2"

    @pytest.mark.asyncio
    async def test_tally(self, monkeypatch):
        console, _ = create_console()
        counts = iter([3, 1])
        monkeypatch.setattr(
            "narrator.ui.interactive.IntPrompt.ask",
            lambda *args, **kwargs: next(counts),
        )
        spec = make_tally_choice("Votes", [0, 2])
        assert await InteractiveNarrator(console=console).decide("Vote", choices=spec) == "0:3,2:1"

    @pytest.mark.asyncio
    async def test_hint_is_shown(self, monkeypatch):
        console, buffer = create_console()
        scripted_input(monkeypatch, [""])
        await InteractiveNarrator(console=console).decide("Dawn", hint="Pick a living player.")
        output = buffer.getvalue()
        assert "Dawn" in output
        assert "Pick a living player." in output

    @pytest.mark.asyncio
    async def test_interrupt_skips(self, monkeypatch):
        console, _ = create_console()

        def interrupted(*args, **kwargs):
            raise EOFError

        monkeypatch.setattr("narrator.ui.interactive.Prompt.ask", interrupted)
        spec = make_seat_choice("Victim?", [3, 5], allow_none=False)
        assert await InteractiveNarrator(console=console).decide("Wolves", choices=spec) == ""

    def test_overview(self):
        console, buffer = create_console()
        InteractiveNarrator(console=console).show_overview({
            "phase": "DAY_VOTE",
            "night": 2,
            "day": 2,
            "living": [{"seat": 0, "name": "Ann", "role": "SEER", "jobs": ["BODYGUARD"]}],
            "dead": ["Bob"],
            "modifiers": [{"label": "Blood Moon"}],
            "queued": [],
        })
        output = buffer.getvalue()
        assert "Ann" in output
        assert "Dead: Bob" in output
        assert "Blood Moon" in output
