"""User context dataclass for holding user and team information."""

from dataclasses import dataclass


@dataclass
class UserContext:
    """Acting user and the team whose data is being operated on."""

    user_id: str
    team_id: str
    roles: list[str] | None = None

    def __post_init__(self):
        """Initialize default values after dataclass creation."""
        if self.roles is None:
            self.roles = []

    @classmethod
    def system(cls, team_id: str) -> "UserContext":
        """Context used by background workers acting on behalf of a team."""
        return cls(user_id="system", team_id=team_id, roles=["system"])
