"""Trigger repositories."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.auth.context import UserContext
from agentorch_common.base.team_scoped_repository import TeamScopedRepository
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.enums import TriggerEntityType
from ..domain.models import AgentTrigger, TriggerDispatch
from .orm import AgentTriggerDispatchORM, AgentTriggerORM


class AgentTriggerRepository(TeamScopedRepository[AgentTriggerORM]):
    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentTriggerORM, user_context)

    async def get_trigger(self, id: UUID) -> AgentTrigger | None:
        trigger_orm = await self.get_by_id(id)
        return self._orm_to_domain(trigger_orm) if trigger_orm else None

    async def create_trigger(
        self,
        name: str,
        entity_type: TriggerEntityType | str,
        status_to: str,
        agent_chain_id: UUID,
        status_from: str | None = None,
        trigger_conditions: dict[str, Any] | None = None,
        enabled: bool = True,
        priority: int = 0,
    ) -> AgentTrigger:
        trigger_orm = await self.create(
            name=name,
            entity_type=TriggerEntityType(entity_type).value,
            status_from=status_from,
            status_to=status_to,
            agent_chain_id=agent_chain_id,
            trigger_conditions=trigger_conditions or {},
            enabled=enabled,
            priority=priority,
        )
        return self._orm_to_domain(trigger_orm)

    async def update_trigger(self, id: UUID, **fields: Any) -> AgentTrigger | None:
        if "entity_type" in fields:
            fields["entity_type"] = TriggerEntityType(fields["entity_type"]).value
        trigger_orm = await self.update(id, **fields)
        return self._orm_to_domain(trigger_orm) if trigger_orm else None

    async def find_candidates(
        self,
        entity_type: TriggerEntityType,
        status_from: str | None,
        status_to: str,
    ) -> list[AgentTrigger]:
        """Enabled triggers for the transition, highest priority first."""
        from_filter = AgentTriggerORM.status_from.is_(None)
        if status_from is not None:
            from_filter = or_(from_filter, AgentTriggerORM.status_from == status_from)

        query = (
            select(AgentTriggerORM)
            .where(
                self._get_team_filter(),
                AgentTriggerORM.enabled.is_(True),
                AgentTriggerORM.entity_type == entity_type.value,
                AgentTriggerORM.status_to == status_to,
                from_filter,
            )
            .order_by(AgentTriggerORM.priority.desc(), AgentTriggerORM.created_at)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(trigger_orm) for trigger_orm in result.scalars().all()]

    async def mark_triggered(self, id: UUID, at: datetime | None = None) -> AgentTrigger | None:
        return await self.update_trigger(id, last_triggered_at=at or datetime.now())

    def _orm_to_domain(self, trigger_orm: AgentTriggerORM) -> AgentTrigger:
        return AgentTrigger.model_validate(trigger_orm).model_copy(deep=True)


class AgentTriggerDispatchRepository(TeamScopedRepository[AgentTriggerDispatchORM]):
    """Dispatch history used to deduplicate trigger firings per entity."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentTriggerDispatchORM, user_context)

    async def record_dispatch(
        self,
        trigger_id: UUID,
        entity_type: TriggerEntityType,
        entity_id: str,
        workflow_id: str | None = None,
        dispatched_at: datetime | None = None,
    ) -> TriggerDispatch:
        dispatch_orm = await self.create(
            agent_trigger_id=trigger_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
            workflow_id=workflow_id,
            dispatched_at=dispatched_at or datetime.now(),
        )
        return TriggerDispatch.model_validate(dispatch_orm)

    async def last_dispatch_at(
        self, trigger_id: UUID, entity_type: TriggerEntityType, entity_id: str
    ) -> datetime | None:
        query = (
            select(AgentTriggerDispatchORM.dispatched_at)
            .where(
                self._get_team_filter(),
                AgentTriggerDispatchORM.agent_trigger_id == trigger_id,
                AgentTriggerDispatchORM.entity_type == entity_type.value,
                AgentTriggerDispatchORM.entity_id == entity_id,
            )
            .order_by(AgentTriggerDispatchORM.dispatched_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
