"""Chain repositories."""

from copy import deepcopy
from typing import Any
from uuid import UUID

from agentorch_common.auth.context import UserContext
from agentorch_common.base.repository import BaseRepository
from agentorch_common.base.team_scoped_repository import TeamScopedRepository
from agentorch_common.exceptions import ChainDefinitionError
from pydantic import ValidationError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.definition import ChainDefinition
from ..domain.enums import ChainExecutionStatus, ChainStepStatus
from ..domain.models import (
    AgentChain,
    AgentChainExecution,
    AgentChainExecutionStep,
    AgentChainTemplate,
)
from .orm import (
    AgentChainExecutionORM,
    AgentChainExecutionStepORM,
    AgentChainORM,
    AgentChainTemplateORM,
)


def _enum_values(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: getattr(value, "value", value) for key, value in fields.items()}


class AgentChainRepository(TeamScopedRepository[AgentChainORM]):
    """Team-owned chains. Definitions are validated on the way in and out."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentChainORM, user_context)

    async def get_chain(self, id: UUID) -> AgentChain | None:
        chain_orm = await self.get_by_id(id)
        return self._orm_to_domain(chain_orm) if chain_orm else None

    async def create_chain(
        self,
        name: str,
        chain_definition: ChainDefinition | dict[str, Any],
        description: str = "",
        enabled: bool = True,
        agent_chain_template_id: UUID | None = None,
    ) -> AgentChain:
        definition = ChainDefinition.parse(chain_definition)
        chain_orm = await self.create(
            name=name,
            description=description,
            chain_definition=definition.to_dict(),
            enabled=enabled,
            agent_chain_template_id=agent_chain_template_id,
        )
        return self._orm_to_domain(chain_orm)

    async def update_chain(self, id: UUID, **fields: Any) -> AgentChain | None:
        if "chain_definition" in fields:
            fields["chain_definition"] = ChainDefinition.parse(fields["chain_definition"]).to_dict()
        chain_orm = await self.update(id, **fields)
        return self._orm_to_domain(chain_orm) if chain_orm else None

    async def list_enabled(self) -> list[AgentChain]:
        return [self._orm_to_domain(chain_orm) for chain_orm in await self.find_by(enabled=True)]

    def _orm_to_domain(self, chain_orm: AgentChainORM) -> AgentChain:
        try:
            return AgentChain.model_validate(chain_orm).model_copy(deep=True)
        except ValidationError as e:
            raise ChainDefinitionError(
                f"Stored chain {chain_orm.id} has an invalid definition: {e}",
                chain_id=str(chain_orm.id),
            ) from e


class AgentChainTemplateRepository(BaseRepository[AgentChainTemplateORM]):
    """Chain templates: system templates plus the caller's team templates."""

    model_class = AgentChainTemplateORM

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session)
        self.user_context = user_context

    def _visible(self):
        return or_(
            AgentChainTemplateORM.is_system.is_(True),
            AgentChainTemplateORM.team_id == self.user_context.team_id,
        )

    async def get_template(self, id: UUID) -> AgentChainTemplate | None:
        query = select(AgentChainTemplateORM).where(
            AgentChainTemplateORM.id == id, self._visible()
        )
        result = await self.session.execute(query)
        template_orm = result.scalar_one_or_none()
        return self._orm_to_domain(template_orm) if template_orm else None

    async def list_available(self) -> list[AgentChainTemplate]:
        query = (
            select(AgentChainTemplateORM)
            .where(self._visible())
            .order_by(AgentChainTemplateORM.is_system.desc(), AgentChainTemplateORM.name)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(template_orm) for template_orm in result.scalars().all()]

    async def create_template(
        self,
        name: str,
        chain_definition: ChainDefinition | dict[str, Any],
        description: str = "",
        is_system: bool = False,
    ) -> AgentChainTemplate:
        definition = ChainDefinition.parse(chain_definition)
        template_orm = AgentChainTemplateORM(
            team_id=None if is_system else self.user_context.team_id,
            created_by=self.user_context.user_id,
            is_system=is_system,
            name=name,
            description=description,
            chain_definition=definition.to_dict(),
        )
        return self._orm_to_domain(await self.create(template_orm))

    def _orm_to_domain(self, template_orm: AgentChainTemplateORM) -> AgentChainTemplate:
        return AgentChainTemplate.model_validate(template_orm).model_copy(deep=True)


class AgentChainExecutionRepository(TeamScopedRepository[AgentChainExecutionORM]):
    """Chain execution persistence."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentChainExecutionORM, user_context)

    async def get_execution(self, id: UUID) -> AgentChainExecution | None:
        execution_orm = await self.get_by_id(id)
        return self._orm_to_domain(execution_orm) if execution_orm else None

    async def lock_execution(self, id: UUID) -> AgentChainExecution | None:
        """Reload the stored row under ``SELECT ... FOR UPDATE``.

        The lock is held until the enclosing transaction ends, so two workers
        re-checking the same execution see each other's committed writes.
        """
        query = (
            select(AgentChainExecutionORM)
            .where(AgentChainExecutionORM.id == id, self._get_team_filter())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        execution_orm = result.scalar_one_or_none()
        return self._orm_to_domain(execution_orm) if execution_orm else None

    async def create_execution(self, **fields: Any) -> AgentChainExecution:
        execution_orm = await self.create(**_enum_values(fields))
        return self._orm_to_domain(execution_orm)

    async def save_execution(self, execution: AgentChainExecution) -> AgentChainExecution:
        """Persist the mutable fields of ``execution``."""
        execution_orm = await self.update_or_raise(
            execution.id,
            current_step_index=execution.current_step_index,
            execution_status=execution.execution_status.value,
            chain_context=deepcopy(execution.chain_context),
            paused_at=execution.paused_at,
            resumed_at=execution.resumed_at,
            completed_at=execution.completed_at,
            failed_at=execution.failed_at,
            error_message=execution.error_message,
        )
        return self._orm_to_domain(execution_orm)

    async def list_by_status(self, status: ChainExecutionStatus) -> list[AgentChainExecution]:
        query = (
            select(AgentChainExecutionORM)
            .where(
                self._get_team_filter(),
                AgentChainExecutionORM.execution_status == status.value,
            )
            .order_by(AgentChainExecutionORM.created_at)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(execution_orm) for execution_orm in result.scalars().all()]

    async def list_for_chain(self, chain_id: UUID) -> list[AgentChainExecution]:
        executions = await self.find_by(agent_chain_id=chain_id)
        return [self._orm_to_domain(execution_orm) for execution_orm in executions]

    def _orm_to_domain(self, execution_orm: AgentChainExecutionORM) -> AgentChainExecution:
        return AgentChainExecution.model_validate(execution_orm).model_copy(deep=True)


class AgentChainExecutionStepRepository(TeamScopedRepository[AgentChainExecutionStepORM]):
    """Step attempt records. A step index revisited by a branch gets a new record."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, AgentChainExecutionStepORM, user_context)

    async def create_step(
        self,
        execution_id: UUID,
        step_index: int,
        status: ChainStepStatus = ChainStepStatus.RUNNING,
        **fields: Any,
    ) -> AgentChainExecutionStep:
        step_orm = await self.create(
            agent_chain_execution_id=execution_id,
            step_index=step_index,
            status=status.value,
            output_data=fields.pop("output_data", {}),
            **fields,
        )
        return self._orm_to_domain(step_orm)

    async def save_step(self, step: AgentChainExecutionStep) -> AgentChainExecutionStep:
        step_orm = await self.update_or_raise(
            step.id,
            status=step.status.value,
            agent_workflow_state_id=step.agent_workflow_state_id,
            output_data=deepcopy(step.output_data),
            started_at=step.started_at,
            completed_at=step.completed_at,
        )
        return self._orm_to_domain(step_orm)

    async def find_step(
        self, execution_id: UUID, step_index: int, status: ChainStepStatus | None = None
    ) -> AgentChainExecutionStep | None:
        """Latest attempt at ``step_index``, optionally restricted to ``status``."""
        query = select(AgentChainExecutionStepORM).where(
            self._get_team_filter(),
            AgentChainExecutionStepORM.agent_chain_execution_id == execution_id,
            AgentChainExecutionStepORM.step_index == step_index,
        )
        if status is not None:
            query = query.where(AgentChainExecutionStepORM.status == status.value)
        query = query.order_by(AgentChainExecutionStepORM.created_at.desc()).limit(1)
        result = await self.session.execute(query)
        step_orm = result.scalar_one_or_none()
        return self._orm_to_domain(step_orm) if step_orm else None

    async def list_for_execution(
        self, execution_id: UUID, step_indices: list[int] | None = None
    ) -> list[AgentChainExecutionStep]:
        query = select(AgentChainExecutionStepORM).where(
            self._get_team_filter(),
            AgentChainExecutionStepORM.agent_chain_execution_id == execution_id,
        )
        if step_indices is not None:
            query = query.where(AgentChainExecutionStepORM.step_index.in_(step_indices))
        query = query.order_by(
            AgentChainExecutionStepORM.step_index, AgentChainExecutionStepORM.created_at
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(step_orm) for step_orm in result.scalars().all()]

    def _orm_to_domain(self, step_orm: AgentChainExecutionStepORM) -> AgentChainExecutionStep:
        return AgentChainExecutionStep.model_validate(step_orm).model_copy(deep=True)
