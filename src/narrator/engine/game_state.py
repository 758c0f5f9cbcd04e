"""Game state management for the narrator."""

from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator

from narrator.engine.night_action_store import RoleTrackers
from narrator.events.game_events import DeathCause, DeathRecord, Winner
from narrator.models.player import Job, Role, SetupResult


class GameState(BaseModel):
    """Represents the current state of the game.

    Players are identified by their position ("seat") in ``players``; names
    may repeat. A dead player keeps role and jobs for display but is excluded
    from action eligibility.
    """

    players: list[str] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)
    jobs: list[list[Job]] = Field(default_factory=list)
    dead: list[int] = Field(default_factory=list)  # ordered, no duplicates
    lovers: list[tuple[int, int]] = Field(default_factory=list)
    mayor: Optional[int] = None
    silenced: Optional[int] = None
    night_counter: int = 0
    day_count: int = 0
    peace_days: int = 0  # consecutive day starts without a death
    current_night_victims: list[int] = Field(default_factory=list)
    executioner_target: Optional[int] = None
    winner: Optional[Winner] = None
    trackers: RoleTrackers = Field(default_factory=RoleTrackers)

    @model_validator(mode="after")
    def _check_alignment(self) -> "GameState":
        if len(self.roles) != len(self.players):
            raise ValueError(
                f"{len(self.players)} players but {len(self.roles)} roles"
            )
        if len(self.jobs) < len(self.players):
            self.jobs = self.jobs + [[] for _ in range(len(self.players) - len(self.jobs))]
        return self

    @classmethod
    def new(cls, players: list[str], setup: SetupResult) -> "GameState":
        """Create a fresh state from a role assignment."""
        return cls(
            players=list(players),
            roles=list(setup.roles),
            jobs=[list(jobs) for jobs in setup.jobs],
            executioner_target=setup.executioner_target,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_valid_seat(self, seat: int) -> bool:
        return isinstance(seat, int) and 0 <= seat < len(self.players)

    def is_alive(self, seat: int) -> bool:
        """Check if a player is alive."""
        return self.is_valid_seat(seat) and seat not in self.dead

    def living_seats(self) -> list[int]:
        return [seat for seat in range(len(self.players)) if seat not in self.dead]

    def dead_seats(self) -> list[int]:
        return list(self.dead)

    def name_of(self, seat: int) -> str:
        if self.is_valid_seat(seat):
            return self.players[seat]
        return f"#{seat}"

    def role_of(self, seat: int) -> Optional[Role]:
        return self.roles[seat] if self.is_valid_seat(seat) else None

    def holders_of(self, role: Role, living_only: bool = True) -> list[int]:
        """Seats holding ``role``."""
        return [
            seat for seat, seat_role in enumerate(self.roles)
            if seat_role == role and (not living_only or seat not in self.dead)
        ]

    def living_roles(self) -> set[Role]:
        return {self.roles[seat] for seat in self.living_seats()}

    def job_holders(self, job: Job, living_only: bool = True) -> list[int]:
        return [
            seat for seat, seat_jobs in enumerate(self.jobs)
            if job in seat_jobs and (not living_only or seat not in self.dead)
        ]

    def is_werewolf(self, seat: int) -> bool:
        """Only an actual Werewolf counts; a Cursed player is not one until bitten."""
        return self.role_of(seat) == Role.WEREWOLF

    def living_werewolves(self) -> list[int]:
        return self.holders_of(Role.WEREWOLF)

    def lover_partners(self, seat: int) -> list[int]:
        partners = []
        for first, second in self.lovers:
            if first == seat:
                partners.append(second)
            elif second == seat:
                partners.append(first)
        return partners

    def is_lover(self, seat: int) -> bool:
        return any(seat in pair for pair in self.lovers)

    def role_counts(self, living_only: bool = True) -> dict[str, int]:
        """Count of each role among (living) players."""
        counts: dict[str, int] = {}
        seats = self.living_seats() if living_only else range(len(self.players))
        for seat in seats:
            role = self.roles[seat].value
            counts[role] = counts.get(role, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def kill(self, seat: int) -> bool:
        """Mark a living player dead. Returns False for invalid or dead seats."""
        if not self.is_alive(seat):
            return False
        self.dead.append(seat)
        return True

    def revive(self, seat: int) -> bool:
        """Bring a dead player back. Returns False if they were not dead."""
        if seat not in self.dead:
            return False
        self.dead.remove(seat)
        return True

    def kill_with_lovers(self, seat: int, cause: DeathCause) -> list[DeathRecord]:
        """Kill ``seat`` and, transitively, every living lover partner.

        Returns one record per newly dead player, in death order.
        """
        records: list[DeathRecord] = []
        if not self.kill(seat):
            return records
        records.append(DeathRecord(seat=seat, cause=cause))
        queue = [seat]
        while queue:
            source = queue.pop(0)
            for partner in self.lover_partners(source):
                if self.kill(partner):
                    records.append(DeathRecord(seat=partner, cause=DeathCause.LOVER, source=source))
                    queue.append(partner)
        return records

    # ------------------------------------------------------------------
    # Victory
    # ------------------------------------------------------------------

    @property
    def game_over(self) -> bool:
        return self.winner is not None

    def is_game_over(self) -> tuple[bool, Optional[Winner]]:
        """Check if the game has ended and return the winner.

        Conditions are checked in order: executioner bounty, lovers,
        peacemaker, village, werewolves.
        """
        living = self.living_seats()

        if self.executioner_target is not None and not self.is_alive(self.executioner_target):
            if self.holders_of(Role.EXECUTIONER):
                return True, Winner.EXECUTIONER

        if self.lovers and living and all(self.is_lover(seat) for seat in living):
            return True, Winner.LOVERS

        if self.holders_of(Role.PEACEMAKER) and self.peace_days >= 4:
            return True, Winner.PEACEMAKER

        werewolves = len(self.living_werewolves())
        if werewolves == 0:
            return True, Winner.VILLAGE

        if werewolves >= len(living) - werewolves:
            return True, Winner.WEREWOLVES

        return False, None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Plain JSON-compatible copy."""
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "GameState":
        return cls.model_validate(data)
