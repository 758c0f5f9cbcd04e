"""Choice specifications for narrator confirmations.

Handlers describe what they need confirmed as a ChoiceSpec; a Confirmation
collaborator (stub, interactive console, or any UI) renders it and answers
with a raw string that the handler parses.

Raw answer formats:
- SEAT: comma-separated seats ("3" or "1,4"); "" or "-1" means none
- SINGLE: the chosen option value; "" means none
- BOOLEAN: "yes" / "no"
- TALLY: "seat:count" pairs separated by commas ("2:3,5:1")
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


NONE_ANSWERS = frozenset({"", "-1", "none", "skip", "pass"})


class ChoiceType(str, Enum):
    """Type of choice interaction."""
    SINGLE = "single"  # Select one option from a list
    SEAT = "seat"      # Select one or more player seats
    BOOLEAN = "bool"   # Yes/No type choice
    TALLY = "tally"    # Enter a vote count per seat


class ChoiceOption(BaseModel):
    """A single choice option."""
    value: str          # The value returned when selected
    display: str        # Text shown to the narrator
    seat_hint: Optional[int] = None  # If this is a seat choice, which seat


class ChoiceSpec(BaseModel):
    """What a handler needs the narrator to confirm."""
    choice_type: ChoiceType
    prompt: str         # Question to ask the narrator
    options: list[ChoiceOption] = Field(default_factory=list)
    allow_none: bool = False  # Allow "skip"
    none_display: str = "Skip"
    min_select: int = 1
    max_select: int = 1
    seat_info: Optional[dict[int, str]] = None  # seat -> display name

    def get_option_by_value(self, value: str) -> Optional[ChoiceOption]:
        """Find option by its value."""
        for opt in self.options:
            if opt.value == value:
                return opt
        return None

    def seats(self) -> list[int]:
        """Seats offered by this choice."""
        return [opt.seat_hint for opt in self.options if opt.seat_hint is not None]

    def get_seat_display(self, seat: int) -> str:
        """Get display name for a seat."""
        if self.seat_info and seat in self.seat_info:
            return f"{self.seat_info[seat]} (#{seat})"
        return f"#{seat}"

    def format_response(self, raw_input: str) -> str:
        """Normalize raw user input into the handler answer format."""
        text = raw_input.strip()
        if text.lower() in NONE_ANSWERS:
            return ""

        if self.choice_type == ChoiceType.BOOLEAN:
            lower = text.lower()
            if lower in ["y", "yes", "true", "1"]:
                return "yes"
            elif lower in ["n", "no", "false", "0"]:
                return "no"
            return text

        elif self.choice_type == ChoiceType.SEAT:
            return ",".join(part.strip() for part in text.replace(" ", ",").split(",") if part.strip())

        elif self.choice_type == ChoiceType.TALLY:
            return ",".join(part.strip() for part in text.split(",") if part.strip())

        else:  # SINGLE
            opt = self.get_option_by_value(text)
            if opt:
                return opt.value
            return text


def parse_seat_answer(raw: Optional[str]) -> Optional[list[int]]:
    """Parse a SEAT answer into unique seats (order kept).

    Returns [] for an explicit "none" and None for unparseable input.
    """
    if raw is None:
        return []
    text = raw.strip()
    if text.lower() in NONE_ANSWERS:
        return []
    seats: list[int] = []
    for part in text.replace(" ", ",").split(","):
        if not part:
            continue
        try:
            seat = int(part)
        except ValueError:
            return None
        if seat not in seats:
            seats.append(seat)
    return seats


def parse_tally_answer(raw: Optional[str]) -> Optional[dict[int, int]]:
    """Parse a TALLY answer ("seat:count,...") into a dict; None if malformed."""
    if raw is None or raw.strip().lower() in NONE_ANSWERS:
        return {}
    tally: dict[int, int] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        seat_text, sep, count_text = part.partition(":")
        if not sep:
            return None
        try:
            seat, count = int(seat_text), int(count_text)
        except ValueError:
            return None
        tally[seat] = tally.get(seat, 0) + max(count, 0)
    return tally


# ============================================================================
# Builder helpers for common choice patterns
# ============================================================================

def make_seat_choice(
    prompt: str,
    seats: list[int],
    seat_info: Optional[dict[int, str]] = None,
    allow_none: bool = True,
    min_select: int = 1,
    max_select: int = 1,
) -> ChoiceSpec:
    """Create a seat selection choice.

    Args:
        prompt: Question to ask
        seats: Available seat numbers
        seat_info: Optional seat -> name info
        allow_none: Allow skipping
        min_select: Fewest seats for a non-empty answer
        max_select: Most seats for a non-empty answer
    """
    options = []
    for seat in seats:
        display = f"#{seat}"
        if seat_info and seat in seat_info:
            display = f"{seat_info[seat]} (#{seat})"
        options.append(ChoiceOption(value=str(seat), display=display, seat_hint=seat))

    return ChoiceSpec(
        choice_type=ChoiceType.SEAT,
        prompt=prompt,
        options=options,
        allow_none=allow_none,
        none_display="Skip",
        min_select=min_select,
        max_select=max_select,
        seat_info=seat_info or {},
    )


def make_action_choice(
    prompt: str,
    actions: list[tuple[str, str]],  # (value, display)
    allow_none: bool = True,
) -> ChoiceSpec:
    """Create a single-choice action selector."""
    options = [
        ChoiceOption(value=value, display=display)
        for value, display in actions
    ]

    # Only include none_display if allow_none is True
    kwargs = {
        "choice_type": ChoiceType.SINGLE,
        "prompt": prompt,
        "options": options,
        "allow_none": allow_none,
    }
    if allow_none:
        kwargs["none_display"] = "No action"

    return ChoiceSpec(**kwargs)


def make_yes_no_choice(prompt: str) -> ChoiceSpec:
    """Create a yes/no choice."""
    return ChoiceSpec(
        choice_type=ChoiceType.BOOLEAN,
        prompt=prompt,
        options=[
            ChoiceOption(value="yes", display="Yes"),
            ChoiceOption(value="no", display="No"),
        ],
        allow_none=False,
    )


def make_tally_choice(
    prompt: str,
    seats: list[int],
    seat_info: Optional[dict[int, str]] = None,
) -> ChoiceSpec:
    """Create a vote-count entry for the given candidates."""
    spec = make_seat_choice(prompt, seats, seat_info=seat_info, allow_none=True)
    return spec.model_copy(update={"choice_type": ChoiceType.TALLY, "none_display": "No votes"})


__all__ = [
    "ChoiceSpec",
    "ChoiceOption",
    "ChoiceType",
    "NONE_ANSWERS",
    "parse_seat_answer",
    "parse_tally_answer",
    "make_seat_choice",
    "make_action_choice",
    "make_yes_no_choice",
    "make_tally_choice",
]
