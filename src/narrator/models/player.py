"""Role, job and setup models."""

import random
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Player roles in the game."""

    VILLAGER = "VILLAGER"
    SEER = "SEER"
    HUNTER = "HUNTER"
    WITCH = "WITCH"
    SILENCER = "SILENCER"
    INQUISITOR = "INQUISITOR"
    SCAPEGOAT = "SCAPEGOAT"
    SIBLING = "SIBLING"
    GHOST = "GHOST"
    WEREWOLF = "WEREWOLF"
    CURSED = "CURSED"
    CUPID = "CUPID"
    TRICKSTER = "TRICKSTER"
    EXECUTIONER = "EXECUTIONER"
    PEACEMAKER = "PEACEMAKER"
    CELEBRITY = "CELEBRITY"


class RoleCategory(str, Enum):
    """Role groups used for setup and display."""

    VILLAGE = "VILLAGE"
    WEREWOLF = "WEREWOLF"  # Werewolf, Cursed
    SPECIAL = "SPECIAL"


class Job(str, Enum):
    """Secondary abilities layered on top of a role."""

    BODYGUARD = "BODYGUARD"
    DOCTOR = "DOCTOR"


ROLE_CATEGORIES: dict[Role, RoleCategory] = {
    Role.VILLAGER: RoleCategory.VILLAGE,
    Role.SEER: RoleCategory.VILLAGE,
    Role.HUNTER: RoleCategory.VILLAGE,
    Role.WITCH: RoleCategory.VILLAGE,
    Role.SILENCER: RoleCategory.VILLAGE,
    Role.INQUISITOR: RoleCategory.VILLAGE,
    Role.SCAPEGOAT: RoleCategory.VILLAGE,
    Role.SIBLING: RoleCategory.VILLAGE,
    Role.GHOST: RoleCategory.VILLAGE,
    Role.WEREWOLF: RoleCategory.WEREWOLF,
    Role.CURSED: RoleCategory.WEREWOLF,
    Role.CUPID: RoleCategory.SPECIAL,
    Role.TRICKSTER: RoleCategory.SPECIAL,
    Role.EXECUTIONER: RoleCategory.SPECIAL,
    Role.PEACEMAKER: RoleCategory.SPECIAL,
    Role.CELEBRITY: RoleCategory.SPECIAL,
}

# Every village role plus Cursed, Celebrity and Peacemaker may hold a job
JOB_ELIGIBLE_ROLES: frozenset[Role] = frozenset(
    [role for role, category in ROLE_CATEGORIES.items() if category == RoleCategory.VILLAGE]
    + [Role.CURSED, Role.CELEBRITY, Role.PEACEMAKER]
)


def role_category(role: Role) -> RoleCategory:
    """Category of a role."""
    return ROLE_CATEGORIES[Role(role)]


class RoleConfig(BaseModel):
    """Role configuration for game setup."""

    role: Role
    count: int = 0
    description: str = ""

    model_config = ConfigDict(use_enum_values=True)


# Standard 8-player game configuration
DEFAULT_ROLE_CONFIG = [
    RoleConfig(role=Role.WEREWOLF, count=2, description="Choose a victim each night"),
    RoleConfig(role=Role.SEER, count=1, description="Learn one player's role each night"),
    RoleConfig(role=Role.WITCH, count=1, description="One healing potion, one poison"),
    RoleConfig(role=Role.HUNTER, count=1, description="Takes someone along when dying"),
    RoleConfig(role=Role.CUPID, count=1, description="Binds two lovers on the first night"),
    RoleConfig(role=Role.VILLAGER, count=2, description="Find the werewolves"),
]


class SetupResult(BaseModel):
    """Role and job assignment produced at game setup."""

    roles: list[Role]
    jobs: list[list[Job]]
    executioner_target: Optional[int] = None


def build_role_pool(player_count: int, role_config: list[RoleConfig]) -> list[Role]:
    """Expand a role configuration into exactly ``player_count`` roles.

    Missing slots are filled with villagers, surplus roles are dropped from
    the end of the configuration.
    """
    roles: list[Role] = []
    for entry in role_config:
        roles.extend([Role(entry.role)] * max(entry.count, 0))
    if len(roles) < player_count:
        roles.extend([Role.VILLAGER] * (player_count - len(roles)))
    return roles[:player_count]


def assign_job_by_chance(
    roles: list[Role],
    jobs: list[list[Job]],
    job: Job,
    chance: float,
    rng: random.Random,
) -> Optional[int]:
    """Give ``job`` to one random eligible seat with probability ``chance``.

    Returns the existing holder when the job is already assigned, the new
    holder's seat, or None when nothing was assigned.
    """
    chance = min(max(chance, 0.0), 1.0)
    if chance <= 0:
        return None
    for seat, seat_jobs in enumerate(jobs):
        if job in seat_jobs:
            return seat
    if rng.random() >= chance:
        return None
    eligible = [seat for seat, role in enumerate(roles) if role in JOB_ELIGIBLE_ROLES]
    if not eligible:
        return None
    seat = rng.choice(eligible)
    jobs[seat].append(job)
    return seat


def pick_executioner_target(roles: list[Role], rng: random.Random) -> Optional[int]:
    """Choose the executioner's private target among village players."""
    executioners = [seat for seat, role in enumerate(roles) if role == Role.EXECUTIONER]
    if not executioners:
        return None
    executioner = executioners[0]
    candidates = [
        seat
        for seat, role in enumerate(roles)
        if seat != executioner and ROLE_CATEGORIES[role] == RoleCategory.VILLAGE
    ]
    if not candidates:
        return None
    return rng.choice(candidates)


def assign_roles(
    player_count: int,
    rng: random.Random,
    role_config: Optional[list[RoleConfig]] = None,
    job_chances: Optional[dict[Job, float]] = None,
) -> SetupResult:
    """Create shuffled role assignments for a game.

    Args:
        player_count: Number of seats.
        rng: random.Random instance for reproducible shuffling.
        role_config: Role counts (default DEFAULT_ROLE_CONFIG).
        job_chances: Probability per job that some eligible seat receives it.

    Returns:
        SetupResult with one role per seat, job lists and executioner target.
    """
    roles = build_role_pool(player_count, role_config or DEFAULT_ROLE_CONFIG)
    rng.shuffle(roles)

    jobs: list[list[Job]] = [[] for _ in range(player_count)]
    for job, chance in (job_chances or {}).items():
        assign_job_by_chance(roles, jobs, Job(job), chance, rng)

    return SetupResult(
        roles=roles,
        jobs=jobs,
        executioner_target=pick_executioner_target(roles, rng),
    )
