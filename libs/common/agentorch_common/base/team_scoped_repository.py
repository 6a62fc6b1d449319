"""Team-scoped repository base class."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.context import UserContext
from ..exceptions.team import MissingTeamContext, TeamResourceNotFound
from ..logging.audit_logger import get_audit_logger
from .models import TeamScopedMixin
from .unit_of_work import in_transaction

T = TypeVar("T", bound=TeamScopedMixin)


class TeamScopedRepository(Generic[T]):
    """Base repository class that provides team-scoped CRUD operations.

    Every query is filtered by the team of the current user context; created_by
    is recorded for audit purposes only.
    """

    def __init__(self, session: AsyncSession, model_class: type[T], user_context: UserContext):
        """Initialize repository with session, model class, and user context.

        Args:
            session: SQLAlchemy async session
            model_class: The model class this repository manages
            user_context: Current user and team context

        Raises:
            MissingTeamContext: If the context carries no team
        """
        if not user_context.team_id:
            raise MissingTeamContext(f"{model_class.__name__} access")
        self.session = session
        self.model_class = model_class
        self.user_context = user_context
        self.audit_logger = get_audit_logger()
        self.resource_type = model_class.__name__.lower().replace("orm", "")

    @property
    def team_id(self) -> str:
        return self.user_context.team_id

    def _get_team_filter(self):
        """Get the team filter for queries."""
        return self.model_class.team_id == self.user_context.team_id

    def _get_creator_team_filter(self):
        """Get the creator and team filter for queries."""
        return and_(
            self.model_class.created_by == self.user_context.user_id,
            self.model_class.team_id == self.user_context.team_id,
        )

    def _scoped(self, query, creator_scoped: bool):
        if creator_scoped:
            return query.where(self._get_creator_team_filter())
        return query.where(self._get_team_filter())

    def _apply_filters(self, query, filters: dict[str, Any]):
        for field, value in filters.items():
            if hasattr(self.model_class, field):
                query = query.where(getattr(self.model_class, field) == value)
        return query

    async def _commit(self) -> None:
        """Commit, or only flush while an enclosing unit of work owns the commit."""
        if in_transaction(self.session):
            await self.session.flush()
        else:
            await self.session.commit()

    async def _rollback(self) -> None:
        if not in_transaction(self.session):
            await self.session.rollback()

    async def get_by_id(self, id: UUID | str, creator_scoped: bool = False) -> T | None:
        """Get a record by ID within the current team.

        Args:
            id: The record ID
            creator_scoped: If True, also filter by created_by

        Returns:
            The record if found, None otherwise
        """
        try:
            query = select(self.model_class).where(self.model_class.id == id)
            query = self._scoped(query, creator_scoped)
            result = await self.session.execute(query)
            record = result.scalar_one_or_none()

            self.audit_logger.log_read(
                resource_type=self.resource_type,
                user_context=self.user_context,
                resource_id=id,
                creator_scoped=creator_scoped,
                found=record is not None,
            )

            return record
        except Exception as e:
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                resource_id=id,
                operation="get_by_id",
            )
            raise

    async def list_all(
        self,
        creator_scoped: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[T]:
        """List all records in the current team.

        Args:
            creator_scoped: If True, only return records created by current user
            limit: Maximum number of records to return
            offset: Number of records to skip
            **filters: Additional field filters

        Returns:
            List of records
        """
        try:
            query = self._scoped(select(self.model_class), creator_scoped)
            query = self._apply_filters(query, filters)

            if offset is not None:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)

            result = await self.session.execute(query)
            records = list(result.scalars().all())

            self.audit_logger.log_list(
                resource_type=self.resource_type,
                user_context=self.user_context,
                count=len(records),
                filters=filters,
                creator_scoped=creator_scoped,
                limit=limit,
                offset=offset,
            )

            return records
        except Exception as e:
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                operation="list_all",
                filters=filters,
            )
            raise

    async def count(self, creator_scoped: bool = False, **filters: Any) -> int:
        """Count records in the current team."""
        query = self._scoped(select(func.count(self.model_class.id)), creator_scoped)
        query = self._apply_filters(query, filters)

        result = await self.session.execute(query)
        return result.scalar() or 0

    async def create(self, **kwargs: Any) -> T:
        """Create a new record in the current team.

        Automatically sets created_by and team_id from user context.
        """
        try:
            kwargs["created_by"] = self.user_context.user_id
            kwargs["team_id"] = self.user_context.team_id

            record = self.model_class(**kwargs)

            self.session.add(record)
            await self._commit()
            await self.session.refresh(record)

            self.audit_logger.log_create(
                resource_type=self.resource_type,
                user_context=self.user_context,
                resource_id=record.id,
                resource_data=kwargs,
            )

            return record
        except Exception as e:
            await self._rollback()
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                operation="create",
                resource_data=kwargs,
            )
            raise

    async def update(self, id: UUID | str, creator_scoped: bool = False, **kwargs: Any) -> T | None:
        """Update a record by ID within the current team.

        Returns:
            The updated record if found, None otherwise
        """
        try:
            query = select(self.model_class).where(self.model_class.id == id)
            query = self._scoped(query, creator_scoped)
            result = await self.session.execute(query)
            record = result.scalar_one_or_none()

            if record is None:
                return None

            original_data = {
                field: getattr(record, field) for field in kwargs.keys() if hasattr(record, field)
            }

            # team ownership never changes
            kwargs.pop("created_by", None)
            kwargs.pop("team_id", None)

            for field, value in kwargs.items():
                if hasattr(record, field):
                    setattr(record, field, value)

            await self._commit()
            await self.session.refresh(record)

            self.audit_logger.log_update(
                resource_type=self.resource_type,
                user_context=self.user_context,
                resource_id=id,
                resource_data=kwargs,
                original_data=original_data,
                creator_scoped=creator_scoped,
            )

            return record
        except Exception as e:
            await self._rollback()
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                resource_id=id,
                operation="update",
                resource_data=kwargs,
            )
            raise

    async def update_or_raise(
        self, id: UUID | str, creator_scoped: bool = False, **kwargs: Any
    ) -> T:
        """Update a record by ID or raise TeamResourceNotFound."""
        record = await self.update(id, creator_scoped, **kwargs)
        if record is None:
            raise TeamResourceNotFound(
                self.resource_type, str(id), self.team_id, self.user_context.user_id
            )
        return record

    async def delete(self, id: UUID | str, creator_scoped: bool = False) -> bool:
        """Delete a record by ID within the current team.

        Returns:
            True if record was deleted, False if not found
        """
        try:
            query = select(self.model_class).where(self.model_class.id == id)
            query = self._scoped(query, creator_scoped)
            result = await self.session.execute(query)
            record = result.scalar_one_or_none()

            if record is None:
                return False

            await self.session.delete(record)
            await self._commit()

            self.audit_logger.log_delete(
                resource_type=self.resource_type,
                user_context=self.user_context,
                resource_id=id,
                creator_scoped=creator_scoped,
            )

            return True
        except Exception as e:
            await self._rollback()
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                resource_id=id,
                operation="delete",
            )
            raise

    async def exists(self, id: UUID | str, creator_scoped: bool = False) -> bool:
        """Check if a record exists by ID within the current team."""
        record = await self.get_by_id(id, creator_scoped)
        return record is not None

    async def find_by(self, creator_scoped: bool = False, **filters: Any) -> list[T]:
        """Find records by field values within the current team."""
        return await self.list_all(creator_scoped=creator_scoped, **filters)

    async def find_one_by(self, creator_scoped: bool = False, **filters: Any) -> T | None:
        """Find one record by field values within the current team."""
        records = await self.find_by(creator_scoped=creator_scoped, **filters)
        return records[0] if records else None
