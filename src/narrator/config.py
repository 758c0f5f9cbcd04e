"""Configuration for the narrator core.

Two layers:
- ``Settings``: process-level knobs (buffer sizes, delays, storage path)
  sourced from ``NARRATOR_*`` environment variables or a ``.env`` file.
- ``EventConfig``: per-game random event switches and deck weights, chosen by
  the narrator when a game is set up.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_DECK_WEIGHT: float = 3.0


class DeckConfig(BaseModel):
    """Enable flag and weight for one event deck."""

    enabled: bool = True
    weight: float = 1.0

    @field_validator("weight", mode="before")
    @classmethod
    def _clamp_weight(cls, value: object) -> float:
        try:
            weight = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        if weight != weight:  # NaN
            return 0.0
        return min(max(weight, 0.0), MAX_DECK_WEIGHT)


class EventConfig(BaseModel):
    """Random event switches for one game."""

    random_events_enabled: bool = True
    blood_moon_enabled: bool = True
    blood_moon_base_chance: float = 0.2
    phoenix_pulse_enabled: bool = True
    phoenix_pulse_chance: float = 0.05
    first_night_shield: bool = True
    decks: dict[str, DeckConfig] = Field(default_factory=dict)
    campaign_id: Optional[str] = "legacy"

    @field_validator("blood_moon_base_chance", "phoenix_pulse_chance", mode="before")
    @classmethod
    def _clamp_chance(cls, value: object) -> float:
        try:
            chance = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        if chance != chance:
            return 0.0
        return min(max(chance, 0.0), 1.0)


class Settings(BaseSettings):
    """Process settings, values sourced from env vars or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="NARRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Persistence
    storage_path: Optional[str] = Field(
        default=None,
        description="JSON file used for persistence; in-memory when unset",
    )
    session_limit: int = 20

    # Ring buffer capacities
    checkpoint_limit: int = 20
    history_limit: int = 25
    action_log_limit: int = 500
    timer_history_limit: int = 200

    # Timed transitions
    transition_delay_ms: int = 1000
    day_end_delay_ms: int = 3000

    # Setup
    bodyguard_job_chance: float = 0.0
    doctor_job_chance: float = 0.0

    log_level: str = "WARNING"
