"""Agent memory service.

Memory is namespaced by scope (project, client, org, chain) and scope id. The
team is taken from the repository's user context, so two teams never see each
other's entries. Chain memory is keyed by chain execution id, which keeps
concurrent executions of the same chain isolated without any locking.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from ..domain.enums import MemoryScope
from ..domain.models import AgentMemory
from ..infrastructure.repository import AgentMemoryRepository

logger = logging.getLogger(__name__)


class MemoryService:
    def __init__(self, memory_repository: AgentMemoryRepository):
        self.memory_repository = memory_repository

    async def store(
        self,
        scope: MemoryScope | str,
        scope_id: UUID | str | int,
        key: str,
        value: Any,
        ttl_minutes: int | None = None,
        agent_id: UUID | None = None,
    ) -> AgentMemory:
        """Store ``value`` under ``key``, replacing any previous value.

        Args:
            scope: Memory scope
            scope_id: Id of the scoped entity
            key: Memory key
            value: Any JSON serializable value
            ttl_minutes: Minutes until the entry expires; None never expires
            agent_id: Agent that owns the entry, if any
        """
        expires_at = (
            datetime.now() + timedelta(minutes=ttl_minutes) if ttl_minutes is not None else None
        )
        return await self.memory_repository.upsert(
            MemoryScope(scope),
            str(scope_id),
            key,
            value,
            expires_at=expires_at,
            agent_id=agent_id,
        )

    async def retrieve(self, scope: MemoryScope | str, scope_id: UUID | str | int, key: str) -> Any:
        """Stored value, or None when the key is absent or expired."""
        entry = await self.memory_repository.get_entry(MemoryScope(scope), str(scope_id), key)
        return entry.value if entry else None

    async def has(self, scope: MemoryScope | str, scope_id: UUID | str | int, key: str) -> bool:
        entry = await self.memory_repository.get_entry(MemoryScope(scope), str(scope_id), key)
        return entry is not None

    async def forget(self, scope: MemoryScope | str, scope_id: UUID | str | int, key: str) -> bool:
        deleted = await self.memory_repository.delete_entries(
            MemoryScope(scope), str(scope_id), key
        )
        return deleted > 0

    async def store_many(
        self,
        scope: MemoryScope | str,
        scope_id: UUID | str | int,
        data: dict[str, Any],
        ttl_minutes: int | None = None,
        agent_id: UUID | None = None,
    ) -> None:
        for key, value in data.items():
            await self.store(scope, scope_id, key, value, ttl_minutes, agent_id)

    async def get_for_scope(
        self, scope: MemoryScope | str, scope_id: UUID | str | int
    ) -> list[AgentMemory]:
        """Unexpired entries for one scoped entity."""
        return await self.memory_repository.list_entries(MemoryScope(scope), str(scope_id))

    async def get_all_for_scope_level(self, scope: MemoryScope | str) -> list[AgentMemory]:
        """Unexpired entries for every entity at a scope level, e.g. all projects."""
        return await self.memory_repository.list_entries(MemoryScope(scope))

    async def clear_expired(self) -> int:
        """Physically delete the team's expired entries."""
        deleted = await self.memory_repository.delete_expired()
        logger.info(f"Cleared {deleted} expired memory entries for team {self._team_id}")
        return deleted

    # Chain scope

    async def store_chain_memory(
        self,
        execution_id: UUID | str,
        key: str,
        value: Any,
        ttl_minutes: int | None = None,
        agent_id: UUID | None = None,
    ) -> AgentMemory:
        return await self.store(MemoryScope.CHAIN, execution_id, key, value, ttl_minutes, agent_id)

    async def get_chain_memory(self, execution_id: UUID | str, key: str) -> Any:
        return await self.retrieve(MemoryScope.CHAIN, execution_id, key)

    async def has_chain_memory(self, execution_id: UUID | str, key: str) -> bool:
        return await self.has(MemoryScope.CHAIN, execution_id, key)

    async def get_all_chain_memories(self, execution_id: UUID | str) -> list[AgentMemory]:
        return await self.get_for_scope(MemoryScope.CHAIN, execution_id)

    async def store_chain_memory_many(
        self,
        execution_id: UUID | str,
        data: dict[str, Any],
        ttl_minutes: int | None = None,
        agent_id: UUID | None = None,
    ) -> None:
        await self.store_many(MemoryScope.CHAIN, execution_id, data, ttl_minutes, agent_id)

    async def clear_chain_memory(self, execution_id: UUID | str) -> int:
        """Delete every chain memory entry of one execution. Returns the count removed."""
        deleted = await self.memory_repository.delete_entries(MemoryScope.CHAIN, str(execution_id))
        logger.debug(f"Cleared {deleted} chain memory entries for execution {execution_id}")
        return deleted

    @property
    def _team_id(self) -> str:
        return self.memory_repository.team_id
