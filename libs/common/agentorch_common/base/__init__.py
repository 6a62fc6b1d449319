from .models import BaseModel, TeamScopedMixin
from .references import EntityLoaderRegistry, EntityRef
from .repository import BaseRepository
from .repository_factory import RepositoryFactory
from .team_scoped_repository import TeamScopedRepository
from .unit_of_work import in_transaction, transaction

__all__ = [
    "BaseModel",
    "BaseRepository",
    "EntityLoaderRegistry",
    "EntityRef",
    "RepositoryFactory",
    "TeamScopedMixin",
    "TeamScopedRepository",
    "in_transaction",
    "transaction",
]
