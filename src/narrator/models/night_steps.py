"""Night step definitions and the default night order."""

from enum import Enum
from pydantic import BaseModel, Field

from narrator.models.player import Job, Role


class NightStepId(str, Enum):
    """One role's (or job's) turn within the night."""

    BODYGUARD = "BODYGUARD"
    DOCTOR = "DOCTOR"
    EXECUTIONER = "EXECUTIONER"
    SIBLINGS = "SIBLINGS"
    CUPID = "CUPID"
    SEER = "SEER"
    INQUISITOR = "INQUISITOR"
    WEREWOLF = "WEREWOLF"
    WITCH = "WITCH"
    SILENCER = "SILENCER"


class NightStepDefinition(BaseModel):
    """Availability rules and narrator prompt for a night step."""

    step_id: NightStepId
    prompt: str
    requires_roles: list[Role] = Field(default_factory=list)
    requires_jobs: list[Job] = Field(default_factory=list)
    first_night_only: bool = False
    requires_doctor_targets: bool = False


DEFAULT_NIGHT_SEQUENCE: list[NightStepDefinition] = [
    NightStepDefinition(
        step_id=NightStepId.BODYGUARD,
        prompt="The bodyguard wakes up and chooses someone to protect.",
        requires_jobs=[Job.BODYGUARD],
    ),
    NightStepDefinition(
        step_id=NightStepId.DOCTOR,
        prompt="The doctor wakes up and may heal one of last night's victims.",
        requires_jobs=[Job.DOCTOR],
        requires_doctor_targets=True,
    ),
    NightStepDefinition(
        step_id=NightStepId.EXECUTIONER,
        prompt="The executioner wakes up and learns their target.",
        requires_roles=[Role.EXECUTIONER],
        first_night_only=True,
    ),
    NightStepDefinition(
        step_id=NightStepId.SIBLINGS,
        prompt="The siblings wake up and recognise each other.",
        requires_roles=[Role.SIBLING],
        first_night_only=True,
    ),
    NightStepDefinition(
        step_id=NightStepId.CUPID,
        prompt="Cupid wakes up and chooses two lovers.",
        requires_roles=[Role.CUPID],
        first_night_only=True,
    ),
    NightStepDefinition(
        step_id=NightStepId.SEER,
        prompt="The seer wakes up and looks at one player's role.",
        requires_roles=[Role.SEER],
    ),
    NightStepDefinition(
        step_id=NightStepId.INQUISITOR,
        prompt="The inquisitor wakes up and asks whether one player is a werewolf.",
        requires_roles=[Role.INQUISITOR],
    ),
    NightStepDefinition(
        step_id=NightStepId.WEREWOLF,
        prompt="The werewolves wake up and choose their victim.",
        requires_roles=[Role.WEREWOLF],
    ),
    NightStepDefinition(
        step_id=NightStepId.WITCH,
        prompt="The witch wakes up and may heal or poison.",
        requires_roles=[Role.WITCH],
    ),
    NightStepDefinition(
        step_id=NightStepId.SILENCER,
        prompt="The silencer wakes up and chooses who stays silent tomorrow.",
        requires_roles=[Role.SILENCER],
    ),
]

_DEFINITIONS: dict[NightStepId, NightStepDefinition] = {
    step.step_id: step for step in DEFAULT_NIGHT_SEQUENCE
}


def get_step_definition(step_id: NightStepId) -> NightStepDefinition:
    """Look up the definition of a night step."""
    return _DEFINITIONS[NightStepId(step_id)]
