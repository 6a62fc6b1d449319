"""Agent repositories."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.auth.context import UserContext
from agentorch_common.base.repository import BaseRepository
from agentorch_common.base.team_scoped_repository import TeamScopedRepository
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.models import (
    Agent,
    AgentActivityLog,
    AgentConfiguration,
    AgentWorkflowState,
    GlobalAISettings,
)
from .orm import (
    AgentActivityLogORM,
    AgentConfigurationORM,
    AgentORM,
    AgentWorkflowStateORM,
    GlobalAISettingsORM,
)


class AgentRepository(BaseRepository[AgentORM]):
    """Agent catalog; not team scoped."""

    model_class = AgentORM

    def __init__(self, session: AsyncSession, user_context: UserContext | None = None):
        super().__init__(session)
        self.user_context = user_context

    async def get_agent(self, id: UUID) -> Agent | None:
        agent_orm = await self.get(id)
        if agent_orm is None:
            return None
        return self._orm_to_domain(agent_orm)

    async def get_by_code(self, code: str) -> Agent | None:
        result = await self.session.execute(select(AgentORM).where(AgentORM.code == code))
        agent_orm = result.scalar_one_or_none()
        return self._orm_to_domain(agent_orm) if agent_orm else None

    async def create_agent(self, agent: Agent) -> Agent:
        agent_orm = AgentORM(
            id=agent.id,
            code=agent.code,
            name=agent.name,
            agent_type=agent.agent_type,
            description=agent.description,
            tools=list(agent.tools),
            template_id=agent.template_id,
            is_active=agent.is_active,
        )
        return self._orm_to_domain(await self.create(agent_orm))

    def _orm_to_domain(self, agent_orm: AgentORM) -> Agent:
        return Agent.model_validate(agent_orm).model_copy(deep=True)


class AgentConfigurationRepository(TeamScopedRepository[AgentConfigurationORM]):
    """Per-team agent configuration persistence, including atomic spend updates."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentConfigurationORM, user_context)

    async def get_configuration(self, id: UUID) -> AgentConfiguration | None:
        config_orm = await self.get_by_id(id)
        return self._orm_to_domain(config_orm) if config_orm else None

    async def get_for_agent(self, agent_id: UUID) -> AgentConfiguration | None:
        config_orm = await self.find_one_by(agent_id=agent_id)
        return self._orm_to_domain(config_orm) if config_orm else None

    async def create_configuration(self, agent_id: UUID, **fields: Any) -> AgentConfiguration:
        fields.pop("id", None)
        fields.pop("team_id", None)
        config_orm = await self.create(agent_id=agent_id, **fields)
        return self._orm_to_domain(config_orm)

    async def update_configuration(self, id: UUID, **fields: Any) -> AgentConfiguration | None:
        config_orm = await self.update(id, **fields)
        return self._orm_to_domain(config_orm) if config_orm else None

    async def increment_spend(self, id: UUID, amount: float) -> AgentConfiguration | None:
        """Add ``amount`` to daily and monthly spend in one UPDATE statement.

        The increment is computed by the database, so concurrent deductions for
        the same configuration never lose an update.
        """
        stmt = (
            update(AgentConfigurationORM)
            .where(AgentConfigurationORM.id == id, self._get_team_filter())
            .values(
                daily_spend=AgentConfigurationORM.daily_spend + amount,
                current_month_spend=AgentConfigurationORM.current_month_spend + amount,
                updated_at=datetime.now(),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            await self._commit()
        except Exception as e:
            await self._rollback()
            self.audit_logger.log_error(
                resource_type=self.resource_type,
                user_context=self.user_context,
                error=str(e),
                resource_id=id,
                operation="increment_spend",
            )
            raise

        if result.rowcount == 0:
            return None

        self.audit_logger.log_update(
            resource_type=self.resource_type,
            user_context=self.user_context,
            resource_id=id,
            resource_data={"spend_increment": amount},
        )
        return await self._reload(id)

    async def reset_daily_spend(self, all_teams: bool = True) -> int:
        """Zero daily spend; monthly spend is never touched.

        Returns the number of configurations that had non-zero daily spend.
        """
        stmt = update(AgentConfigurationORM).where(AgentConfigurationORM.daily_spend != 0)
        if not all_teams:
            stmt = stmt.where(self._get_team_filter())
        stmt = stmt.values(daily_spend=0.0, updated_at=datetime.now()).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        await self._commit()
        return result.rowcount or 0

    async def reset_monthly_spend(self, all_teams: bool = True) -> int:
        """Zero monthly spend at the month boundary."""
        stmt = update(AgentConfigurationORM).where(AgentConfigurationORM.current_month_spend != 0)
        if not all_teams:
            stmt = stmt.where(self._get_team_filter())
        stmt = stmt.values(current_month_spend=0.0, updated_at=datetime.now()).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        await self._commit()
        return result.rowcount or 0

    async def _reload(self, id: UUID) -> AgentConfiguration | None:
        query = (
            select(AgentConfigurationORM)
            .where(AgentConfigurationORM.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        config_orm = result.scalar_one_or_none()
        return self._orm_to_domain(config_orm) if config_orm else None

    def _orm_to_domain(self, config_orm: AgentConfigurationORM) -> AgentConfiguration:
        return AgentConfiguration.model_validate(config_orm).model_copy(deep=True)


class GlobalAISettingsRepository(TeamScopedRepository[GlobalAISettingsORM]):
    """Team-wide AI policy persistence."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, GlobalAISettingsORM, user_context)

    async def get_for_team(self) -> GlobalAISettings | None:
        settings_orm = await self.find_one_by()
        return self._orm_to_domain(settings_orm) if settings_orm else None

    async def get_or_create_for_team(self, **defaults: Any) -> GlobalAISettings:
        """Return the team's settings, creating the singleton row on first use."""
        existing = await self.get_for_team()
        if existing is not None:
            return existing
        return self._orm_to_domain(await self.create(**defaults))

    async def update_settings(self, **fields: Any) -> GlobalAISettings:
        current = await self.get_or_create_for_team()
        settings_orm = await self.update_or_raise(current.id, **fields)
        return self._orm_to_domain(settings_orm)

    def _orm_to_domain(self, settings_orm: GlobalAISettingsORM) -> GlobalAISettings:
        return GlobalAISettings.model_validate(settings_orm)


class AgentWorkflowStateRepository(TeamScopedRepository[AgentWorkflowStateORM]):
    """Workflow state persistence."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentWorkflowStateORM, user_context)

    async def get_state(self, id: UUID) -> AgentWorkflowState | None:
        state_orm = await self.get_by_id(id)
        return self._orm_to_domain(state_orm) if state_orm else None

    async def create_state(
        self,
        workflow_class: str,
        state_data: dict[str, Any],
        agent_id: UUID | None = None,
        current_node: str = "start",
    ) -> AgentWorkflowState:
        state_orm = await self.create(
            workflow_class=workflow_class,
            agent_id=agent_id,
            current_node=current_node,
            state_data=state_data,
            approval_required=False,
        )
        return self._orm_to_domain(state_orm)

    async def save_state(self, state: AgentWorkflowState) -> AgentWorkflowState:
        """Persist the mutable fields of ``state``."""
        state_orm = await self.update_or_raise(
            state.id,
            current_node=state.current_node,
            state_data=dict(state.state_data),
            paused_at=state.paused_at,
            resumed_at=state.resumed_at,
            completed_at=state.completed_at,
            pause_reason=state.pause_reason,
            approval_required=state.approval_required,
        )
        return self._orm_to_domain(state_orm)

    async def list_pending_approvals(self) -> list[AgentWorkflowState]:
        query = (
            select(AgentWorkflowStateORM)
            .where(
                self._get_team_filter(),
                AgentWorkflowStateORM.approval_required.is_(True),
                AgentWorkflowStateORM.paused_at.is_not(None),
                AgentWorkflowStateORM.completed_at.is_(None),
            )
            .order_by(AgentWorkflowStateORM.paused_at)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(state_orm) for state_orm in result.scalars().all()]

    def _orm_to_domain(self, state_orm: AgentWorkflowStateORM) -> AgentWorkflowState:
        return AgentWorkflowState.model_validate(state_orm).model_copy(deep=True)


class AgentActivityLogRepository(TeamScopedRepository[AgentActivityLogORM]):
    """Append-only activity log persistence."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentActivityLogORM, user_context)

    async def record(self, **fields: Any) -> AgentActivityLog:
        return self._orm_to_domain(await self.create(**fields))

    async def list_for_agent(self, agent_id: UUID, limit: int = 100) -> list[AgentActivityLog]:
        query = (
            select(AgentActivityLogORM)
            .where(self._get_team_filter(), AgentActivityLogORM.agent_id == agent_id)
            .order_by(AgentActivityLogORM.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(log_orm) for log_orm in result.scalars().all()]

    def _orm_to_domain(self, log_orm: AgentActivityLogORM) -> AgentActivityLog:
        return AgentActivityLog.model_validate(log_orm).model_copy(deep=True)
