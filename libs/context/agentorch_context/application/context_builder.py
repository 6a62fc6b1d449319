"""Builds agent context from project, client and organization snapshots."""

import json
import logging
from datetime import date, datetime
from typing import Any, Protocol
from uuid import UUID

from agentorch_agents.domain.models import Agent
from agentorch_common.config import get_orchestration_settings
from agentorch_memory.application.memory_service import MemoryService
from agentorch_memory.domain.enums import MemoryScope

from ..domain.facts import ClientFacts, OrganizationFacts, ProjectFacts
from ..domain.formatting import estimate_tokens
from ..domain.models import AgentContext, ChainContext, filter_output

logger = logging.getLogger(__name__)

LOW_PRIORITY_FIELDS = ("stored_memories", "tags", "notes", "statistics", "contacts")
LIST_FIELDS = ("recent_work_orders", "pending_tasks", "active_projects", "previous_step_outputs")
ESSENTIAL_FIELDS = ("name", "status", "description", "type")
LIST_FIELD_LIMIT = 3


class ExecutionRef(Protocol):
    @property
    def id(self) -> UUID: ...


class ContextBuilder:
    """Assembles ``AgentContext`` objects within a token budget.

    Truncation is deterministic: sections are first trimmed to a share of the
    budget (project 1.5x, client 1x, organization 0.5x of a third each), then
    whole sections are dropped until the estimate fits.
    """

    def __init__(
        self,
        memory_service: MemoryService | None = None,
        default_max_tokens: int | None = None,
        chars_per_token: int | None = None,
        notes_max_length: int | None = None,
    ):
        settings = get_orchestration_settings()
        self.memory_service = memory_service
        self.default_max_tokens = (
            settings.CONTEXT_MAX_TOKENS if default_max_tokens is None else default_max_tokens
        )
        self.chars_per_token = chars_per_token or settings.CONTEXT_CHARS_PER_TOKEN
        self.notes_max_length = notes_max_length or settings.CONTEXT_NOTES_MAX_LENGTH

    async def build(
        self,
        project: ProjectFacts | None,
        agent: Agent,
        max_tokens: int | None = None,
        organization: OrganizationFacts | None = None,
    ) -> AgentContext:
        """Build the context for ``agent`` working on ``project``.

        Args:
            project: Project snapshot; its client and organization are included
            agent: The agent that will consume the context
            max_tokens: Token budget, defaults to the configured budget
            organization: Organization to use when there is no project
        """
        context = await self._assemble(project, agent, organization)
        return self._truncate(context, self._budget(max_tokens))

    async def build_from_chain_context(
        self,
        chain_context: ChainContext,
        execution: ExecutionRef,
        agent: Agent,
        max_tokens: int | None = None,
        project: ProjectFacts | None = None,
        filter_rules: dict[str, list[str]] | None = None,
    ) -> AgentContext:
        """Build the context for a chain step.

        Prior step outputs are injected as ``previous_step_outputs`` in step
        order, each filtered by the consuming step's ``filter_rules``
        (``context_include`` / ``context_exclude``).
        """
        filter_rules = filter_rules or {}
        include = filter_rules.get("context_include") or None
        exclude = filter_rules.get("context_exclude") or None
        previous_outputs = [
            filter_output(output, include, exclude)
            for output in chain_context.get_all_outputs().values()
        ]

        context = await self._assemble(project, agent, None)
        context = context.with_project_context({"previous_step_outputs": previous_outputs})
        context = context.with_metadata({"chain_execution_id": str(execution.id)})
        return self._truncate(context, self._budget(max_tokens))

    def build_project_context(self, project: ProjectFacts) -> dict[str, Any]:
        context: dict[str, Any] = {
            "name": project.name,
            "description": project.description,
            "status": project.status,
            "start_date": _iso(project.start_date),
            "target_end_date": _iso(project.target_end_date),
            "progress": project.progress,
            "budget_hours": project.budget_hours,
            "actual_hours": project.actual_hours,
            "tags": list(project.tags),
        }
        if project.recent_work_orders:
            context["recent_work_orders"] = [
                work_order.model_dump() for work_order in project.recent_work_orders
            ]
        if project.pending_tasks:
            context["pending_tasks"] = [
                task.model_dump(mode="json") for task in project.pending_tasks
            ]
        return context

    def build_client_context(self, party: ClientFacts) -> dict[str, Any]:
        context: dict[str, Any] = {
            "name": party.name,
            "type": party.type,
            "contact_name": party.contact_name,
            "contact_email": party.contact_email,
            "status": party.status,
            "notes": self._truncate_text(party.notes, self.notes_max_length),
            "tags": list(party.tags),
        }
        if party.active_projects:
            context["active_projects"] = [p.model_dump() for p in party.active_projects]
        if party.contacts:
            context["contacts"] = [contact.model_dump() for contact in party.contacts[:3]]
        return context

    def build_org_context(self, team: OrganizationFacts) -> dict[str, Any]:
        return {
            "name": team.name,
            "statistics": {
                "active_projects": team.active_projects,
                "total_parties": team.total_parties,
            },
        }

    async def _assemble(
        self,
        project: ProjectFacts | None,
        agent: Agent,
        organization: OrganizationFacts | None,
    ) -> AgentContext:
        client = project.client if project else None
        organization = (project.organization if project else None) or organization

        project_context = self.build_project_context(project) if project else {}
        client_context = self.build_client_context(client) if client else {}
        org_context = self.build_org_context(organization) if organization else {}

        if self.memory_service is not None:
            await self._append_memories(project_context, MemoryScope.PROJECT, project)
            await self._append_memories(client_context, MemoryScope.CLIENT, client)
            await self._append_memories(org_context, MemoryScope.ORG, organization)

        metadata = {
            "entity_type": "project" if project else None,
            "entity_id": project.id if project else None,
            "agent_id": str(agent.id),
            "built_at": datetime.now().isoformat(),
        }
        return AgentContext(
            project_context=project_context,
            client_context=client_context,
            org_context=org_context,
            metadata={key: value for key, value in metadata.items() if value is not None},
        )

    async def _append_memories(self, section: dict[str, Any], scope: MemoryScope, entity) -> None:
        if entity is None:
            return
        memories = await self.memory_service.get_for_scope(scope, entity.id)
        if memories:
            section["stored_memories"] = {memory.key: memory.value for memory in memories}

    def _budget(self, max_tokens: int | None) -> int:
        return self.default_max_tokens if max_tokens is None else max_tokens

    def _estimate(self, context: AgentContext) -> int:
        return estimate_tokens(context.to_prompt_string(), self.chars_per_token)

    def _truncate(self, context: AgentContext, max_tokens: int) -> AgentContext:
        if self._estimate(context) <= max_tokens:
            return context

        base_allocation = max_tokens // 3
        context = AgentContext(
            project_context=self._truncate_section(
                context.project_context, int(base_allocation * 1.5)
            ),
            client_context=self._truncate_section(context.client_context, base_allocation),
            org_context=self._truncate_section(context.org_context, int(base_allocation * 0.5)),
            metadata={**context.metadata, "truncated": True},
        )

        for reduce in (
            lambda c: c.model_copy(update={"org_context": {}}),
            lambda c: c.model_copy(update={"client_context": {}}),
            lambda c: c.model_copy(
                update={"project_context": _pick(c.project_context, ("name", "status"))}
            ),
            lambda c: c.model_copy(update={"project_context": {}}),
            lambda c: c.model_copy(update={"metadata": {"truncated": True}}),
            lambda c: c.model_copy(update={"metadata": {}}),
        ):
            if self._estimate(context) <= max_tokens:
                break
            context = reduce(context)

        logger.debug(f"Context truncated to {self._estimate(context)} tokens (max {max_tokens})")
        return context

    def _truncate_section(self, section: dict[str, Any], max_tokens: int) -> dict[str, Any]:
        if not section or self._section_tokens(section) <= max_tokens:
            return section

        truncated = dict(section)
        for field in LOW_PRIORITY_FIELDS:
            if field in truncated:
                del truncated[field]
                if self._section_tokens(truncated) <= max_tokens:
                    return truncated

        for field in LIST_FIELDS:
            if isinstance(truncated.get(field), list):
                if field == "previous_step_outputs":
                    truncated[field] = truncated[field][-LIST_FIELD_LIMIT:]
                else:
                    truncated[field] = truncated[field][:LIST_FIELD_LIMIT]
                if self._section_tokens(truncated) <= max_tokens:
                    return truncated

        return _pick(truncated, ESSENTIAL_FIELDS)

    def _section_tokens(self, section: dict[str, Any]) -> int:
        return estimate_tokens(json.dumps(section, default=str), self.chars_per_token)

    @staticmethod
    def _truncate_text(text: str | None, max_length: int) -> str | None:
        if text is None or len(text) <= max_length:
            return text
        return text[: max_length - 3] + "..."


def _pick(data: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if key in keys}


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None
