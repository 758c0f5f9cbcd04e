"""Engine package - game state, session and phase orchestration.

Only the leaf modules are re-exported here because the handlers import
``narrator.engine.game_state``. Import ``GameSession``, ``PhaseController``
and ``NarratorGame`` from their own modules.
"""

from .game_state import GameState
from .night_action_store import RoleTrackers
from .validator import (
    GameValidator,
    NoOpValidator,
    CollectingValidator,
    create_validator,
    ValidationViolation,
    ValidationSeverity,
)

__all__ = [
    "GameState",
    "RoleTrackers",
    "GameValidator",
    "NoOpValidator",
    "CollectingValidator",
    "create_validator",
    "ValidationViolation",
    "ValidationSeverity",
]
