"""Narrator step handlers for night steps and the day flow."""

# Re-export common types from base
from narrator.handlers.base import (
    HandlerContext,
    HandlerResult,
    StepHandler,
    parse_living_seats,
    format_seats,
)

# Import handlers
from .death_resolution_handler import DeathResolutionHandler
from .bodyguard_handler import BodyguardHandler
from .doctor_handler import DoctorHandler, doctor_available_targets
from .info_handler import ExecutionerInfoHandler, SiblingsInfoHandler
from .cupid_handler import CupidHandler
from .seer_handler import SeerHandler, InquisitorHandler
from .werewolf_handler import WerewolfHandler
from .witch_handler import WitchHandler
from .silencer_handler import SilencerHandler
from .mayor_election_handler import MayorElectionHandler
from .accusation_handler import AccusationHandler, AccusationResult
from .voting_handler import VotingHandler, VoteResult, VoteTally, tally_votes
from .hunter_handler import HunterHandler

from narrator.models.night_steps import NightStepId


def default_night_handlers(
    death_resolution: DeathResolutionHandler | None = None,
) -> dict[NightStepId, StepHandler]:
    """One handler per night step, sharing a death resolution handler."""
    death_resolution = death_resolution or DeathResolutionHandler()
    return {
        NightStepId.BODYGUARD: BodyguardHandler(),
        NightStepId.DOCTOR: DoctorHandler(),
        NightStepId.EXECUTIONER: ExecutionerInfoHandler(),
        NightStepId.SIBLINGS: SiblingsInfoHandler(),
        NightStepId.CUPID: CupidHandler(),
        NightStepId.SEER: SeerHandler(),
        NightStepId.INQUISITOR: InquisitorHandler(),
        NightStepId.WEREWOLF: WerewolfHandler(death_resolution),
        NightStepId.WITCH: WitchHandler(death_resolution),
        NightStepId.SILENCER: SilencerHandler(),
    }


__all__ = [
    # Base types
    "HandlerContext",
    "HandlerResult",
    "StepHandler",
    "parse_living_seats",
    "format_seats",
    # Night handlers
    "DeathResolutionHandler",
    "BodyguardHandler",
    "DoctorHandler",
    "doctor_available_targets",
    "ExecutionerInfoHandler",
    "SiblingsInfoHandler",
    "CupidHandler",
    "SeerHandler",
    "InquisitorHandler",
    "WerewolfHandler",
    "WitchHandler",
    "SilencerHandler",
    "default_night_handlers",
    # Day handlers
    "MayorElectionHandler",
    "AccusationHandler",
    "AccusationResult",
    "VotingHandler",
    "VoteResult",
    "VoteTally",
    "tally_votes",
    "HunterHandler",
]
