"""Console module for human narrators.

Provides:
- ChoiceSpec: structured choice specifications for rendering
- answer parsers for seat and tally answers
- InteractiveNarrator: rich-based interactive narrator (import from
  ``narrator.ui.interactive``)
"""

from .choices import (
    ChoiceSpec,
    ChoiceOption,
    ChoiceType,
    NONE_ANSWERS,
    parse_seat_answer,
    parse_tally_answer,
    make_seat_choice,
    make_action_choice,
    make_yes_no_choice,
    make_tally_choice,
)

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
