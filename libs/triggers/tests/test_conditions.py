"""Tests for trigger condition predicates."""

import pytest
from agentorch_triggers.domain.conditions import entity_budget, evaluate_conditions
from agentorch_triggers.domain.enums import TriggerEntityType
from agentorch_triggers.domain.models import AgentTrigger, TriggerEntity


def work_order(**attributes):
    tags = attributes.pop("tags", [])
    return TriggerEntity(
        type=TriggerEntityType.WORK_ORDER,
        id=42,
        team_id="team-1",
        attributes=attributes,
        tags=tags,
    )


class TestBudgetConditions:
    def test_work_order_budget_comes_from_budget_cost(self):
        assert entity_budget(work_order(budget_cost="1500.50", budget=10)) == 1500.5

    def test_other_entities_prefer_budget(self):
        deliverable = TriggerEntity(
            type=TriggerEntityType.DELIVERABLE, id="d-1", attributes={"budget": 80}
        )

        assert entity_budget(deliverable) == 80

    @pytest.mark.parametrize(
        "conditions, expected",
        [
            ({"budget_greater_than": 1000}, True),
            ({"budget_greater_than": 5000}, False),
            ({"budget_less_than": 5000}, True),
            ({"budget_greater_than": 1000, "budget_less_than": 2000}, True),
            ({"budget_greater_than": "lots"}, False),
        ],
    )
    def test_thresholds(self, conditions, expected):
        assert evaluate_conditions(conditions, work_order(budget_cost=1500)) is expected

    def test_missing_budget_counts_as_zero(self):
        assert evaluate_conditions({"budget_less_than": 1}, work_order()) is True


class TestTagAndFieldConditions:
    def test_all_tags_required(self):
        entity = work_order(tags=["urgent", "retainer"])

        assert evaluate_conditions({"has_tags": ["urgent"]}, entity)
        assert not evaluate_conditions({"has_tags": ["urgent", "fixed-fee"]}, entity)

    def test_single_tag_string(self):
        assert evaluate_conditions({"has_tags": "urgent"}, work_order(tags=["urgent"]))

    def test_field_equality(self):
        entity = work_order(priority="high", client_id=7)

        assert evaluate_conditions({"entity_field_equals": {"priority": "high"}}, entity)
        assert not evaluate_conditions(
            {"entity_field_equals": {"priority": "high", "client_id": 8}}, entity
        )
        assert not evaluate_conditions({"entity_field_equals": "high"}, entity)


class TestEvaluation:
    def test_empty_conditions_match(self):
        assert evaluate_conditions({}, work_order())
        assert evaluate_conditions(None, work_order())

    def test_unknown_keys_and_window_are_ignored(self):
        conditions = {"deduplication_window_minutes": 30, "moon_phase": "full"}

        assert evaluate_conditions(conditions, work_order())


class TestTransitionMatching:
    @pytest.fixture
    def trigger(self):
        return AgentTrigger(
            team_id="team-1",
            name="  Kickoff  ",
            entity_type=TriggerEntityType.WORK_ORDER,
            status_to="approved",
            agent_chain_id="6f1c2a3e-58a4-4c47-9d0a-1d2f6c7e9b11",
            trigger_conditions={"deduplication_window_minutes": "15"},
        )

    def test_name_is_stripped(self, trigger):
        assert trigger.name == "Kickoff"

    def test_any_source_status_matches_when_unset(self, trigger):
        assert trigger.matches_transition(None, "approved")
        assert trigger.matches_transition("draft", "approved")
        assert not trigger.matches_transition("draft", "closed")

    def test_source_status_must_match_when_set(self, trigger):
        trigger.status_from = "review"

        assert trigger.matches_transition("review", "approved")
        assert not trigger.matches_transition("draft", "approved")

    def test_deduplication_window(self, trigger):
        assert trigger.deduplication_window_minutes == 15
        trigger.trigger_conditions = {}
        assert trigger.deduplication_window_minutes is None
