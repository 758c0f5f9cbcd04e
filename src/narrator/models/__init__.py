"""Models package."""

from narrator.models.player import (
    Role,
    RoleCategory,
    Job,
    ROLE_CATEGORIES,
    JOB_ELIGIBLE_ROLES,
    role_category,
    RoleConfig,
    DEFAULT_ROLE_CONFIG,
    SetupResult,
    build_role_pool,
    assign_job_by_chance,
    pick_executioner_target,
    assign_roles,
)
from narrator.models.night_steps import (
    NightStepId,
    NightStepDefinition,
    DEFAULT_NIGHT_SEQUENCE,
    get_step_definition,
)

__all__ = [
    "Role",
    "RoleCategory",
    "Job",
    "ROLE_CATEGORIES",
    "JOB_ELIGIBLE_ROLES",
    "role_category",
    "RoleConfig",
    "DEFAULT_ROLE_CONFIG",
    "SetupResult",
    "build_role_pool",
    "assign_job_by_chance",
    "pick_executioner_target",
    "assign_roles",
    "NightStepId",
    "NightStepDefinition",
    "DEFAULT_NIGHT_SEQUENCE",
    "get_step_definition",
]
