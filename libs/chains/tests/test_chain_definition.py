"""Tests for chain definition parsing and the chain repositories."""

from uuid import uuid4

import pytest
from agentorch_chains.domain.definition import ChainDefinition
from agentorch_chains.domain.enums import BranchAction, ChainExecutionStatus, ExecutionMode
from agentorch_chains.infrastructure.orm import AgentChainORM
from agentorch_chains.infrastructure.repository import AgentChainRepository
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.exceptions import ChainDefinitionError


class TestChainDefinition:
    def test_parses_full_step(self):
        agent_id = uuid4()

        definition = ChainDefinition.parse(
            {
                "steps": [
                    {
                        "agent_id": str(agent_id),
                        "workflow_class": "scope_review",
                        "execution_mode": "parallel",
                        "step_group": "review",
                        "context_filter_rules": {"context_exclude": ["raw"]},
                        "output_transformer": {"type": "select_keys", "keys": ["summary"]},
                        "next_step_conditions": [{"action": "terminate"}],
                    }
                ]
            }
        )

        step = definition.step(0)
        assert step.agent_id == agent_id
        assert step.execution_mode is ExecutionMode.PARALLEL
        assert step.is_parallel
        assert step.filter_rules() == {"context_include": [], "context_exclude": ["raw"]}
        assert step.output_transformer.model_dump() == {"type": "select_keys", "keys": ["summary"]}
        assert step.next_step_conditions[0].action is BranchAction.TERMINATE
        assert definition.step(1) is None

    def test_empty_definition_has_no_steps(self):
        assert ChainDefinition.parse(None).steps == []

    def test_parallel_step_requires_group(self):
        raw = {"steps": [{"agent_id": str(uuid4()), "execution_mode": "parallel"}]}

        with pytest.raises(ChainDefinitionError):
            ChainDefinition.parse(raw)

    def test_goto_target_must_exist(self):
        raw = {
            "steps": [
                {
                    "agent_id": str(uuid4()),
                    "next_step_conditions": [{"action": "goto", "target_step": 4}],
                }
            ]
        }

        with pytest.raises(ChainDefinitionError, match="branches to step 4"):
            ChainDefinition.parse(raw)

    def test_unknown_action_is_rejected(self):
        raw = {
            "steps": [{"agent_id": str(uuid4()), "next_step_conditions": [{"action": "loop"}]}]
        }

        with pytest.raises(ChainDefinitionError):
            ChainDefinition.parse(raw)

    def test_missing_agent_is_rejected(self):
        with pytest.raises(ChainDefinitionError):
            ChainDefinition.parse({"steps": [{"workflow_class": "x"}]})

    def test_group_indices(self):
        definition = ChainDefinition.parse(
            {
                "steps": [
                    {"agent_id": str(uuid4())},
                    {"agent_id": str(uuid4()), "execution_mode": "parallel", "step_group": "g"},
                    {"agent_id": str(uuid4()), "execution_mode": "parallel", "step_group": "g"},
                ]
            }
        )

        assert definition.group_indices("g") == [1, 2]
        assert definition.group_indices("other") == []

    def test_to_dict_round_trips_through_json(self):
        raw = {"steps": [{"agent_id": str(uuid4()), "workflow_class": "intake"}]}

        dumped = ChainDefinition.parse(raw).to_dict()

        assert dumped["steps"][0]["agent_id"] == raw["steps"][0]["agent_id"]
        assert dumped["steps"][0]["execution_mode"] == "sequential"
        assert ChainDefinition.parse(dumped) == ChainDefinition.parse(raw)


class TestAgentChainRepository:
    @pytest.mark.asyncio
    async def test_invalid_definition_is_not_stored(self, repository_factory):
        chains = repository_factory.create_repository(AgentChainRepository)

        with pytest.raises(ChainDefinitionError):
            await chains.create_chain("Broken", {"steps": [{"agent_id": "not-a-uuid"}]})

        assert await chains.count() == 0

    @pytest.mark.asyncio
    async def test_corrupt_stored_definition_raises_on_load(
        self, repository_factory, db_session, user_context
    ):
        chains = repository_factory.create_repository(AgentChainRepository)
        chain_orm = AgentChainORM(
            team_id=user_context.team_id,
            created_by=user_context.user_id,
            name="Legacy",
            chain_definition={"steps": [{"execution_mode": "parallel"}]},
        )
        db_session.add(chain_orm)
        await db_session.commit()

        with pytest.raises(ChainDefinitionError):
            await chains.get_chain(chain_orm.id)

    @pytest.mark.asyncio
    async def test_chains_are_team_scoped(self, repository_factory, db_session, other_team_context):
        chains = repository_factory.create_repository(AgentChainRepository)
        chain = await chains.create_chain("Intake", {"steps": [{"agent_id": str(uuid4())}]})

        other = RepositoryFactory(db_session, other_team_context).create_repository(
            AgentChainRepository
        )

        assert await other.get_chain(chain.id) is None
        assert await other.list_enabled() == []
        assert [c.id for c in await chains.list_enabled()] == [chain.id]


def test_terminal_statuses():
    assert ChainExecutionStatus.COMPLETED.is_terminal
    assert ChainExecutionStatus.FAILED.is_terminal
    assert not ChainExecutionStatus.PAUSED.is_terminal
    assert not ChainExecutionStatus.RUNNING.is_terminal
