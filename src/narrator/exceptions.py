"""Exceptions raised inside the narrator core.

Expected game-flow conditions (no target, disabled event, empty deck) never
raise; they come back as skipped or rejected results. These exceptions cover
the few truly exceptional paths.
"""


class NarratorError(Exception):
    """Base class for narrator errors."""


class StorageError(NarratorError):
    """Raised by storage backends when a read or write fails.

    Callers in the core catch this at the call site and keep the in-memory
    state authoritative.
    """


class GameOverError(NarratorError):
    """Raised by the async driver when a transition is requested after game over."""


class MaxRetriesExceededError(NarratorError):
    """Raised when the narrator keeps giving invalid answers to a required step."""
