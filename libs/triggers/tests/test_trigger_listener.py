"""Tests for TriggerListener."""

from datetime import datetime, timedelta
from uuid import UUID

import pytest
import pytest_asyncio
from agentorch_agents.infrastructure.repository import GlobalAISettingsRepository
from agentorch_chains.infrastructure.repository import AgentChainRepository
from agentorch_common.auth.context import UserContext
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.workflow import OrchestrationWorkflows
from agentorch_triggers.application.trigger_listener import TriggerListener
from agentorch_triggers.domain.enums import TriggerEntityType
from agentorch_triggers.domain.models import TriggerActor, TriggerEntity
from agentorch_triggers.infrastructure.repository import (
    AgentTriggerDispatchRepository,
    AgentTriggerRepository,
)

CHAIN_DEFINITION = {"steps": [{"agent_id": "0b8f3f9e-6d0a-4a55-9a43-3c1f0e2d7a10"}]}


@pytest.fixture
def listener(db_session, workflow_executor, event_broker):
    return TriggerListener(db_session, workflow_executor, event_broker)


@pytest.fixture
def triggers(repository_factory):
    return repository_factory.create_repository(AgentTriggerRepository)


@pytest_asyncio.fixture
async def chain(repository_factory):
    chains = repository_factory.create_repository(AgentChainRepository)
    return await chains.create_chain("Kickoff", CHAIN_DEFINITION)


@pytest.fixture
def approved_work_order():
    return TriggerEntity(
        type=TriggerEntityType.WORK_ORDER,
        id="wo-1",
        team_id="team-1",
        attributes={"title": "Website refresh", "budget_cost": 12000},
        tags=["retainer"],
    )


def trigger_ids(jobs):
    return [UUID(job["args"]["trigger_id"]) for job in jobs]


class TestMatching:
    @pytest.mark.asyncio
    async def test_dispatches_matching_trigger(
        self, listener, triggers, chain, approved_work_order, workflow_executor, event_broker
    ):
        trigger = await triggers.create_trigger(
            "Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id
        )
        actor = TriggerActor(id="user-9", name="Dana", email="dana@example.com")

        dispatched = await listener.handle_status_change(
            approved_work_order, "draft", "approved", actor
        )

        assert [t.id for t in dispatched] == [trigger.id]
        jobs = workflow_executor.started_for(OrchestrationWorkflows.PROCESS_CHAIN_TRIGGER)
        assert len(jobs) == 1
        args = jobs[0]["args"]
        assert args["trigger_id"] == str(trigger.id)
        assert args["team_id"] == "team-1"
        assert args["entity"]["id"] == "wo-1"
        assert args["entity"]["type"] == "work_order"
        assert args["actor"] == {"id": "user-9", "name": "Dana", "email": "dana@example.com"}
        assert jobs[0]["config"].retry_attempts == 3
        assert event_broker.event_types() == ["ChainTriggerDispatched"]

        stored = await triggers.get_trigger(trigger.id)
        assert stored.last_triggered_at is not None

    @pytest.mark.asyncio
    async def test_non_matching_transitions_do_nothing(
        self, listener, triggers, chain, approved_work_order, workflow_executor
    ):
        await triggers.create_trigger(
            "From review", TriggerEntityType.WORK_ORDER, "approved", chain.id, status_from="review"
        )
        await triggers.create_trigger("Closed", TriggerEntityType.WORK_ORDER, "closed", chain.id)
        await triggers.create_trigger("Tasks", TriggerEntityType.TASK, "approved", chain.id)
        await triggers.create_trigger(
            "Disabled", TriggerEntityType.WORK_ORDER, "approved", chain.id, enabled=False
        )

        assert await listener.handle_status_change(approved_work_order, "draft", "approved") == []
        assert workflow_executor.started == []

    @pytest.mark.asyncio
    async def test_priority_order(self, listener, triggers, chain, approved_work_order):
        low = await triggers.create_trigger(
            "Low", TriggerEntityType.WORK_ORDER, "approved", chain.id, priority=1
        )
        high = await triggers.create_trigger(
            "High", TriggerEntityType.WORK_ORDER, "approved", chain.id, priority=10
        )
        any_source = await triggers.create_trigger(
            "Any", TriggerEntityType.WORK_ORDER, "approved", chain.id, status_from=None, priority=5
        )

        dispatched = await listener.handle_status_change(approved_work_order, "draft", "approved")

        assert [t.id for t in dispatched] == [high.id, any_source.id, low.id]

    @pytest.mark.asyncio
    async def test_conditions_filter_triggers(
        self, listener, triggers, chain, approved_work_order, workflow_executor
    ):
        big = await triggers.create_trigger(
            "Big budget",
            TriggerEntityType.WORK_ORDER,
            "approved",
            chain.id,
            trigger_conditions={"budget_greater_than": 10000, "has_tags": ["retainer"]},
        )
        await triggers.create_trigger(
            "Small budget",
            TriggerEntityType.WORK_ORDER,
            "approved",
            chain.id,
            trigger_conditions={"budget_less_than": 1000},
        )

        await listener.handle_status_change(approved_work_order, None, "approved")

        assert trigger_ids(workflow_executor.started) == [big.id]

    @pytest.mark.asyncio
    async def test_disabled_chain_is_skipped(
        self, listener, triggers, chain, approved_work_order, repository_factory, workflow_executor
    ):
        await triggers.create_trigger("Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id)
        chains = repository_factory.create_repository(AgentChainRepository)
        await chains.update_chain(chain.id, enabled=False)

        assert await listener.handle_status_change(approved_work_order, "draft", "approved") == []
        assert workflow_executor.started == []

    @pytest.mark.asyncio
    async def test_entity_without_team_is_ignored(
        self, listener, triggers, chain, workflow_executor
    ):
        await triggers.create_trigger("Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id)
        orphan = TriggerEntity(type=TriggerEntityType.WORK_ORDER, id="wo-2")

        assert await listener.handle_status_change(orphan, "draft", "approved") == []
        assert workflow_executor.started == []

    @pytest.mark.asyncio
    async def test_other_team_triggers_do_not_fire(
        self, listener, db_session, other_team_context, chain, workflow_executor
    ):
        other = RepositoryFactory(db_session, other_team_context)
        other_chain = await other.create_repository(AgentChainRepository).create_chain(
            "Theirs", CHAIN_DEFINITION
        )
        await other.create_repository(AgentTriggerRepository).create_trigger(
            "Theirs", TriggerEntityType.WORK_ORDER, "approved", other_chain.id
        )
        entity = TriggerEntity(type=TriggerEntityType.WORK_ORDER, id="wo-3", team_id="team-1")

        assert await listener.handle_status_change(entity, "draft", "approved") == []
        assert workflow_executor.started == []


class TestDeduplication:
    @pytest.mark.asyncio
    async def test_repeat_within_window_is_suppressed(
        self, listener, triggers, chain, approved_work_order, workflow_executor
    ):
        await triggers.create_trigger(
            "Kickoff",
            TriggerEntityType.WORK_ORDER,
            "approved",
            chain.id,
            trigger_conditions={"deduplication_window_minutes": 30},
        )

        first = await listener.handle_status_change(approved_work_order, "draft", "approved")
        second = await listener.handle_status_change(approved_work_order, "draft", "approved")

        assert len(first) == 1
        assert second == []
        assert len(workflow_executor.started) == 1

    @pytest.mark.asyncio
    async def test_window_is_per_entity(
        self, listener, triggers, chain, approved_work_order, workflow_executor
    ):
        await triggers.create_trigger(
            "Kickoff",
            TriggerEntityType.WORK_ORDER,
            "approved",
            chain.id,
            trigger_conditions={"deduplication_window_minutes": 30},
        )
        other_order = approved_work_order.model_copy(update={"id": "wo-99"})

        await listener.handle_status_change(approved_work_order, "draft", "approved")
        await listener.handle_status_change(other_order, "draft", "approved")

        assert len(workflow_executor.started) == 2

    @pytest.mark.asyncio
    async def test_dispatch_outside_window_fires_again(
        self, listener, triggers, chain, approved_work_order, repository_factory, workflow_executor
    ):
        trigger = await triggers.create_trigger(
            "Kickoff",
            TriggerEntityType.WORK_ORDER,
            "approved",
            chain.id,
            trigger_conditions={"deduplication_window_minutes": 30},
        )
        dispatches = repository_factory.create_repository(AgentTriggerDispatchRepository)
        await dispatches.record_dispatch(
            trigger.id,
            TriggerEntityType.WORK_ORDER,
            "wo-1",
            dispatched_at=datetime.now() - timedelta(hours=2),
        )

        await listener.handle_status_change(approved_work_order, "draft", "approved")

        assert len(workflow_executor.started) == 1

    @pytest.mark.asyncio
    async def test_no_window_allows_repeats(
        self, listener, triggers, chain, approved_work_order, workflow_executor
    ):
        await triggers.create_trigger("Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id)

        await listener.handle_status_change(approved_work_order, "draft", "approved")
        await listener.handle_status_change(approved_work_order, "draft", "approved")

        jobs = workflow_executor.started
        assert len(jobs) == 2
        assert jobs[0]["workflow_id"] != jobs[1]["workflow_id"]

    @pytest.mark.asyncio
    async def test_listener_default_window_applies(
        self, db_session, triggers, chain, approved_work_order, workflow_executor
    ):
        listener = TriggerListener(db_session, workflow_executor, deduplication_window_minutes=10)
        await triggers.create_trigger("Kickoff", TriggerEntityType.WORK_ORDER, "approved", chain.id)

        await listener.handle_status_change(approved_work_order, "draft", "approved")
        await listener.handle_status_change(approved_work_order, "draft", "approved")

        assert len(workflow_executor.started) == 1


class TestPMCopilotTrigger:
    @pytest_asyncio.fixture
    async def enable_copilot(self, db_session):
        settings = RepositoryFactory(db_session, UserContext.system("team-1")).create_repository(
            GlobalAISettingsRepository
        )
        await settings.update_settings(pm_copilot_auto_suggest=True)

    @pytest.mark.asyncio
    async def test_new_work_order_enqueues_copilot(
        self, listener, enable_copilot, approved_work_order, workflow_executor, event_broker
    ):
        workflow_id = await listener.handle_entity_created(approved_work_order)

        jobs = workflow_executor.started_for(OrchestrationWorkflows.PROCESS_PM_COPILOT_TRIGGER)
        assert [job["workflow_id"] for job in jobs] == [workflow_id]
        assert jobs[0]["args"]["team_id"] == "team-1"
        assert jobs[0]["args"]["work_order"] == {
            "title": "Website refresh",
            "budget_cost": 12000,
            "id": "wo-1",
        }
        assert event_broker.event_types() == ["PMCopilotTriggerDispatched"]

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, listener, approved_work_order, workflow_executor):
        assert await listener.handle_entity_created(approved_work_order) is None
        assert workflow_executor.started == []

    @pytest.mark.asyncio
    async def test_work_order_with_tasks_is_skipped(
        self, listener, enable_copilot, approved_work_order, workflow_executor
    ):
        planned = approved_work_order.model_copy(update={"attributes": {"tasks_count": 4}})

        assert await listener.handle_entity_created(planned) is None
        assert workflow_executor.started == []

    @pytest.mark.asyncio
    async def test_only_work_orders(self, listener, enable_copilot, workflow_executor):
        task = TriggerEntity(type=TriggerEntityType.TASK, id="t-1", team_id="team-1")

        assert await listener.handle_entity_created(task) is None
        assert workflow_executor.started == []
