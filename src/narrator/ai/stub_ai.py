"""Stub narrator for simulations and tests.

Answers every confirmation with a random valid selection taken from the
ChoiceSpec, so full games run without a human at the console.
"""

import random
from typing import Optional

from narrator.ui.choices import ChoiceSpec, ChoiceType


class StubNarrator:
    """A narrator that picks random valid answers.

    When choices are provided, selects directly from the offered options,
    which keeps every answer valid. Steps without choices are simply
    acknowledged.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        skip_chance: float = 0.2,
        max_votes: int = 3,
    ):
        """Initialize the stub.

        Args:
            seed: Seed for a private random generator (ignored when rng is given)
            rng: Random generator to draw from
            skip_chance: Probability of skipping when skipping is allowed
            max_votes: Highest vote count entered for one candidate
        """
        self._rng = rng or random.Random(seed)
        self.skip_chance = skip_chance
        self.max_votes = max_votes
        self.prompts: list[str] = []
        self._last_response: Optional[str] = None

    async def decide(
        self,
        prompt: str,
        hint: Optional[str] = None,
        choices: Optional[ChoiceSpec] = None,
    ) -> str:
        """Return a valid answer for ``choices`` ("" when there is nothing to pick)."""
        self.prompts.append(prompt)
        response = "" if choices is None else self._choose_from_spec(choices)
        self._last_response = response
        return response

    def _skip(self, choices: ChoiceSpec) -> bool:
        return choices.allow_none and self._rng.random() < self.skip_chance

    def _choose_from_spec(self, choices: ChoiceSpec) -> str:
        if not choices.options:
            return ""

        if choices.choice_type == ChoiceType.BOOLEAN:
            return self._rng.choice(choices.options).value

        if choices.choice_type == ChoiceType.TALLY:
            if self._skip(choices):
                return ""
            return ",".join(
                f"{opt.seat_hint}:{self._rng.randint(0, self.max_votes)}"
                for opt in choices.options
            )

        if self._skip(choices):
            return ""

        if choices.choice_type == ChoiceType.SEAT:
            seats = choices.seats()
            low = min(max(choices.min_select, 1), len(seats))
            high = min(max(choices.max_select, low), len(seats))
            count = self._rng.randint(low, high)
            return ",".join(str(seat) for seat in self._rng.sample(seats, count))

        # SINGLE
        return self._rng.choice(choices.options).value
