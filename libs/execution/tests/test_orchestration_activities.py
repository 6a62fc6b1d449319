"""Tests for the orchestration job activities."""

from contextlib import asynccontextmanager
from uuid import uuid4

import pytest
import pytest_asyncio
from agentorch_agents.domain.models import Agent
from agentorch_agents.infrastructure.repository import AgentRepository
from agentorch_chains.domain.enums import ChainExecutionStatus, ChainStepStatus
from agentorch_chains.infrastructure.repository import (
    AgentChainExecutionStepRepository,
    AgentChainRepository,
)
from agentorch_common.config import DatabaseSettings, RedisSettings, Settings
from agentorch_common.workflow import OrchestrationWorkflows
from agentorch_execution import ActivityDependencies, create_activities_for_worker
from agentorch_execution.activities.dependencies import ActivityContext
from agentorch_execution.models import (
    ExecuteChainStepRequest,
    FailChainStepRequest,
    ProcessChainTriggerRequest,
    ProcessPMCopilotTriggerRequest,
)
from agentorch_triggers.domain.enums import TriggerEntityType
from agentorch_triggers.infrastructure.repository import AgentTriggerRepository
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def step(**fields):
    return {"agent_id": str(uuid4()), **fields}


@pytest.fixture
def dependencies(test_engine, event_broker, workflow_executor):
    sessions = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def session_factory():
        async with sessions() as session:
            yield session
            await session.commit()

    return ActivityDependencies(
        settings=Settings(database=DatabaseSettings(), broker=RedisSettings()),
        event_broker=event_broker,
        workflow_executor=workflow_executor,
        session_factory=session_factory,
    )


@pytest.fixture
def activities(dependencies):
    return {fn.__name__: fn for fn in create_activities_for_worker(dependencies)}


@pytest.fixture
def chains(repository_factory):
    return repository_factory.create_repository(AgentChainRepository)


@pytest_asyncio.fixture
async def fan_out_chain(chains):
    return await chains.create_chain(
        "Fan out",
        {
            "steps": [
                step(),
                step(execution_mode="parallel", step_group="review"),
                step(execution_mode="parallel", step_group="review"),
                step(),
            ]
        },
    )


async def dispatch_group(dependencies, chain):
    async with ActivityContext(dependencies, "team-1") as ctx:
        orchestrator = ctx.chain_orchestrator()
        execution = await orchestrator.execute_chain(chain)
        return await orchestrator.run_until_blocked(execution)


def test_worker_registers_every_activity(activities):
    assert set(activities) == {
        "process_chain_trigger_activity",
        "execute_chain_step_activity",
        "fail_chain_step_activity",
        "process_pm_copilot_trigger_activity",
    }


class TestProcessChainTrigger:
    @pytest.mark.asyncio
    async def test_runs_triggered_chain(self, activities, repository_factory, chains):
        chain = await chains.create_chain("Kickoff", {"steps": [step(), step()]})
        trigger = await repository_factory.create_repository(
            AgentTriggerRepository
        ).create_trigger("Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id)

        result = await activities["process_chain_trigger_activity"](
            ProcessChainTriggerRequest(
                trigger_id=trigger.id,
                team_id="team-1",
                entity={"type": "work_order", "id": "wo-1", "team_id": "team-1"},
                actor={"id": "user-1", "name": "Sam"},
            )
        )

        assert result.status == "completed"
        assert result.execution_status == ChainExecutionStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_missing_trigger_is_skipped(self, activities):
        result = await activities["process_chain_trigger_activity"](
            ProcessChainTriggerRequest(
                trigger_id=uuid4(),
                team_id="team-1",
                entity={"type": "work_order", "id": "wo-1"},
            )
        )

        assert result.status == "skipped"


class TestExecuteChainStep:
    @pytest.mark.asyncio
    async def test_group_members_close_barrier_and_finish_chain(
        self, activities, dependencies, fan_out_chain, workflow_executor
    ):
        execution = await dispatch_group(dependencies, fan_out_chain)
        jobs = workflow_executor.started_for(OrchestrationWorkflows.EXECUTE_CHAIN_STEP)
        assert [job["args"]["step_index"] for job in jobs] == [1, 2]

        first = await activities["execute_chain_step_activity"](
            ExecuteChainStepRequest(**jobs[0]["args"])
        )
        assert first.execution_status == ChainExecutionStatus.RUNNING.value

        second = await activities["execute_chain_step_activity"](
            ExecuteChainStepRequest(**jobs[1]["args"])
        )
        assert second.chain_execution_id == str(execution.id)
        assert second.execution_status == ChainExecutionStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_unknown_execution_is_skipped(self, activities):
        result = await activities["execute_chain_step_activity"](
            ExecuteChainStepRequest(chain_execution_id=uuid4(), team_id="team-1", step_index=0)
        )

        assert result.status == "skipped"

    @pytest.mark.asyncio
    async def test_failed_member_settles_group(
        self, activities, dependencies, fan_out_chain, workflow_executor, repository_factory
    ):
        execution = await dispatch_group(dependencies, fan_out_chain)
        jobs = workflow_executor.started_for(OrchestrationWorkflows.EXECUTE_CHAIN_STEP)

        await activities["execute_chain_step_activity"](ExecuteChainStepRequest(**jobs[0]["args"]))
        result = await activities["fail_chain_step_activity"](
            FailChainStepRequest(**jobs[1]["args"], error_message="agent timed out")
        )

        assert result.status == "failed"
        assert result.execution_status == ChainExecutionStatus.COMPLETED.value
        steps = repository_factory.create_repository(AgentChainExecutionStepRepository)
        failed = await steps.find_step(execution.id, 2)
        assert failed.status is ChainStepStatus.FAILED
        assert failed.output_data["error"] == "agent timed out"


class TestProcessPMCopilotTrigger:
    @pytest.mark.asyncio
    async def test_starts_copilot_state(self, activities, repository_factory):
        agents = repository_factory.create_repository(AgentRepository)
        await agents.create_agent(Agent(code="pm-copilot", name="PM Copilot"))

        result = await activities["process_pm_copilot_trigger_activity"](
            ProcessPMCopilotTriggerRequest(team_id="team-1", work_order={"id": "wo-5"})
        )

        assert result.status == "completed"
        assert result.workflow_state_id is not None

    @pytest.mark.asyncio
    async def test_missing_agent_is_skipped(self, activities):
        result = await activities["process_pm_copilot_trigger_activity"](
            ProcessPMCopilotTriggerRequest(team_id="team-1", work_order={"id": "wo-5"})
        )

        assert result.status == "skipped"
