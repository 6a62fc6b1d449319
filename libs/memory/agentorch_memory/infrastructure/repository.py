"""Agent memory repository."""

from copy import deepcopy
from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.auth.context import UserContext
from agentorch_common.base.team_scoped_repository import TeamScopedRepository
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.enums import MemoryScope
from ..domain.models import AgentMemory
from .orm import AgentMemoryORM


class AgentMemoryRepository(TeamScopedRepository[AgentMemoryORM]):
    """Team-scoped memory persistence. Expiry is evaluated at read time."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentMemoryORM, user_context)

    def _not_expired(self, now: datetime):
        return or_(AgentMemoryORM.expires_at.is_(None), AgentMemoryORM.expires_at > now)

    def _key_filter(self, scope: MemoryScope, scope_id: str, key: str | None = None):
        conditions = [
            self._get_team_filter(),
            AgentMemoryORM.scope == scope.value,
            AgentMemoryORM.scope_id == scope_id,
        ]
        if key is not None:
            conditions.append(AgentMemoryORM.key == key)
        return conditions

    async def get_entry(
        self, scope: MemoryScope, scope_id: str, key: str, include_expired: bool = False
    ) -> AgentMemory | None:
        query = select(AgentMemoryORM).where(*self._key_filter(scope, scope_id, key))
        if not include_expired:
            query = query.where(self._not_expired(datetime.now()))
        result = await self.session.execute(query)
        memory_orm = result.scalar_one_or_none()
        return self._orm_to_domain(memory_orm) if memory_orm else None

    async def upsert(
        self,
        scope: MemoryScope,
        scope_id: str,
        key: str,
        value: Any,
        expires_at: datetime | None = None,
        agent_id: UUID | None = None,
    ) -> AgentMemory:
        """Insert or replace the entry at (team, scope, scope_id, key)."""
        existing = await self.get_entry(scope, scope_id, key, include_expired=True)
        fields = {
            "agent_id": agent_id,
            "scope_type": scope.scope_type,
            "value": deepcopy(value),
            "expires_at": expires_at,
        }
        if existing is not None:
            memory_orm = await self.update_or_raise(existing.id, **fields)
        else:
            memory_orm = await self.create(
                scope=scope.value, scope_id=scope_id, key=key, **fields
            )
        return self._orm_to_domain(memory_orm)

    async def list_entries(
        self, scope: MemoryScope, scope_id: str | None = None
    ) -> list[AgentMemory]:
        """Unexpired entries for a scope level, optionally narrowed to one scope id."""
        query = select(AgentMemoryORM).where(
            self._get_team_filter(),
            AgentMemoryORM.scope == scope.value,
            self._not_expired(datetime.now()),
        )
        if scope_id is not None:
            query = query.where(AgentMemoryORM.scope_id == scope_id)
        query = query.order_by(AgentMemoryORM.created_at, AgentMemoryORM.key)

        result = await self.session.execute(query)
        entries = [self._orm_to_domain(memory_orm) for memory_orm in result.scalars().all()]
        self.audit_logger.log_list(
            resource_type=self.resource_type,
            user_context=self.user_context,
            count=len(entries),
            filters={"scope": scope.value, "scope_id": scope_id},
        )
        return entries

    async def delete_entries(
        self, scope: MemoryScope, scope_id: str, key: str | None = None
    ) -> int:
        """Delete one key, or every key when ``key`` is None. Returns rows removed."""
        stmt = delete(AgentMemoryORM).where(*self._key_filter(scope, scope_id, key))
        return await self._bulk_delete(stmt, scope=scope.value, scope_id=scope_id, key=key)

    async def delete_expired(self) -> int:
        stmt = delete(AgentMemoryORM).where(
            self._get_team_filter(),
            AgentMemoryORM.expires_at.is_not(None),
            AgentMemoryORM.expires_at <= datetime.now(),
        )
        return await self._bulk_delete(stmt, expired=True)

    async def _bulk_delete(self, stmt, **context: Any) -> int:
        try:
            result = await self.session.execute(
                stmt.execution_options(synchronize_session="fetch")
            )
            await self._commit()
        except Exception as e:
            await self._rollback()
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                operation="delete",
                **context,
            )
            raise

        deleted = result.rowcount or 0
        self.audit_logger.log_delete(
            resource_type=self.resource_type,
            user_context=self.user_context,
            deleted=deleted,
            **context,
        )
        return deleted

    def _orm_to_domain(self, memory_orm: AgentMemoryORM) -> AgentMemory:
        return AgentMemory.model_validate(memory_orm).model_copy(deep=True)
