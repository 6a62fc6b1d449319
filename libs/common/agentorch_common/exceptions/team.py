"""Team-related exception classes."""


class TeamError(Exception):
    """Base exception for team isolation errors."""

    def __init__(
        self,
        message: str,
        team_id: str | None = None,
        user_id: str | None = None,
        resource_id: str | None = None,
    ):
        super().__init__(message)
        self.team_id = team_id
        self.user_id = user_id
        self.resource_id = resource_id
        self.message = message

    def __str__(self) -> str:
        context_parts = []
        if self.team_id:
            context_parts.append(f"team_id={self.team_id}")
        if self.user_id:
            context_parts.append(f"user_id={self.user_id}")
        if self.resource_id:
            context_parts.append(f"resource_id={self.resource_id}")

        if context_parts:
            return f"{self.message} ({', '.join(context_parts)})"
        return self.message


class TeamAccessDenied(TeamError):  # noqa: N818
    """Raised when a record from another team is addressed."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        current_team_id: str,
        resource_team_id: str | None = None,
        user_id: str | None = None,
    ):
        if resource_team_id:
            message = (
                f"Access denied to {resource_type} '{resource_id}'. "
                f"Resource belongs to team '{resource_team_id}' "
                f"but caller acts for team '{current_team_id}'"
            )
        else:
            message = f"Access denied to {resource_type} '{resource_id}'"
        super().__init__(message, current_team_id, user_id, resource_id)
        self.resource_type = resource_type
        self.current_team_id = current_team_id
        self.resource_team_id = resource_team_id


class TeamResourceNotFound(TeamError):  # noqa: N818
    """Raised when a resource is not found within the caller's team."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        team_id: str,
        user_id: str | None = None,
    ):
        message = f"{resource_type.title()} '{resource_id}' not found in team '{team_id}'"
        super().__init__(message, team_id, user_id, resource_id)
        self.resource_type = resource_type


class MissingTeamContext(TeamError):  # noqa: N818
    """Raised when an operation requires a team but none was supplied."""

    def __init__(self, operation: str, resource_id: str | None = None):
        super().__init__(f"Operation '{operation}' requires a team", resource_id=resource_id)
        self.operation = operation
