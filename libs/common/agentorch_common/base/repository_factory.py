"""Team-bound construction of repositories sharing one session."""

from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import UserContext
from .team_scoped_repository import TeamScopedRepository

R = TypeVar("R", bound=TeamScopedRepository)


class RepositoryFactory:
    """Hands out team-scoped repositories bound to one session and one team.

    Repositories are cached per class, so services composed from the same
    factory (a chain orchestrator and its memory service, say) share
    repository instances and take part in the same unit of work.
    """

    def __init__(self, session: AsyncSession, user_context: UserContext):
        self.session = session
        self.user_context = user_context
        self._repositories: dict[type[TeamScopedRepository], TeamScopedRepository] = {}

    @classmethod
    def for_team(cls, session: AsyncSession, team_id: str) -> "RepositoryFactory":
        """Factory acting as the system user of ``team_id`` (trigger jobs, sweeps)."""
        return cls(session, UserContext.system(team_id))

    @property
    def team_id(self) -> str:
        return self.user_context.team_id

    def create_repository(self, repository_class: type[R]) -> R:
        """Repository of ``repository_class`` for this factory's team and session."""
        repository = self._repositories.get(repository_class)
        if repository is None:
            repository = repository_class(session=self.session, user_context=self.user_context)
            self._repositories[repository_class] = repository
        return repository
