"""Per-role trackers that persist across nights."""

from typing import Optional
from pydantic import BaseModel, Field


class RoleTrackers(BaseModel):
    """Potion counts, one-shot ability flags and protection state.

    Persistent state (kept for the whole game):
    - witch_heal_remaining / witch_poison_remaining: potions left
    - hunter_shot_used: the hunter's revenge shot is spent
    - first_night_shield_used: the first-night shield has fired
    - doctor_pending_targets / doctor_pending_night: deferred heal targets
    - celebrity_accusations / celebrity_spotlight: public accusation tracking
    - blood_moon_active / phoenix_pulse_pending: mirrored from event handlers
    - ghost_message_sent: the ghost already left a message

    Ephemeral state (cleared at night start):
    - bodyguard_target / bodyguard_night / bodyguard_saved
    """

    witch_heal_remaining: int = 1
    witch_poison_remaining: int = 1
    hunter_shot_used: bool = False
    hunter_died_last_night: list[int] = Field(default_factory=list)
    first_night_shield_used: bool = False

    bodyguard_target: Optional[int] = None
    bodyguard_night: Optional[int] = None
    bodyguard_saved: list[int] = Field(default_factory=list)

    doctor_pending_targets: list[int] = Field(default_factory=list)
    doctor_pending_night: Optional[int] = None
    doctor_last_heal_night: Optional[int] = None

    celebrity_accusations: dict[int, int] = Field(default_factory=dict)
    celebrity_spotlight: list[int] = Field(default_factory=list)

    blood_moon_active: bool = False
    phoenix_pulse_pending: bool = False
    ghost_message_sent: bool = False

    def reset_for_new_night(self) -> None:
        """Clear the bodyguard's protection from the previous night."""
        self.bodyguard_target = None
        self.bodyguard_night = None
        self.bodyguard_saved = []

    def is_protected(self, seat: int, night: int) -> bool:
        """A protection only counts in the exact night it was designated."""
        return self.bodyguard_target == seat and self.bodyguard_night == night

    def register_bodyguard_save(self, seat: int) -> None:
        if seat not in self.bodyguard_saved:
            self.bodyguard_saved.append(seat)

    def clear_doctor_pending(self) -> None:
        self.doctor_pending_targets = []
        self.doctor_pending_night = None

    def has_spotlight(self, seat: int) -> bool:
        return seat in self.celebrity_spotlight
