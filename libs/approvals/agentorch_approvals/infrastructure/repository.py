"""Inbox item repository."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.auth.context import UserContext
from agentorch_common.base.references import EntityRef
from agentorch_common.base.team_scoped_repository import TeamScopedRepository
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.enums import InboxItemType
from ..domain.models import InboxItem
from .orm import InboxItemORM


class InboxItemRepository(TeamScopedRepository[InboxItemORM]):
    """Team-scoped inbox persistence."""

    def __init__(self, session: AsyncSession, user_context: UserContext):
        super().__init__(session, InboxItemORM, user_context)

    async def get_item(self, id: UUID) -> InboxItem | None:
        item_orm = await self.get_by_id(id)
        return self._orm_to_domain(item_orm) if item_orm else None

    async def create_item(self, approvable: EntityRef | None = None, **fields: Any) -> InboxItem:
        if approvable is not None:
            fields["approvable_type"] = approvable.type
            fields["approvable_id"] = approvable.id
        for name in ("type", "source_type", "urgency"):
            if hasattr(fields.get(name), "value"):
                fields[name] = fields[name].value
        return self._orm_to_domain(await self.create(**fields))

    async def mark_approved(self, id: UUID, approver_id: str) -> InboxItem:
        item_orm = await self.update_or_raise(
            id, approved_at=datetime.now(), approved_by=approver_id
        )
        return self._orm_to_domain(item_orm)

    async def mark_rejected(self, id: UUID, rejector_id: str, reason: str) -> InboxItem:
        item_orm = await self.update_or_raise(
            id, rejected_at=datetime.now(), rejected_by=rejector_id, rejection_reason=reason
        )
        return self._orm_to_domain(item_orm)

    async def find_pending_for(self, approvable: EntityRef) -> InboxItem | None:
        """Most recent unresolved approval item pointing at ``approvable``."""
        query = (
            select(InboxItemORM)
            .where(
                self._get_team_filter(),
                InboxItemORM.type == InboxItemType.APPROVAL.value,
                InboxItemORM.approvable_type == approvable.type,
                InboxItemORM.approvable_id == approvable.id,
                InboxItemORM.approved_at.is_(None),
                InboxItemORM.rejected_at.is_(None),
            )
            .order_by(InboxItemORM.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        item_orm = result.scalar_one_or_none()
        return self._orm_to_domain(item_orm) if item_orm else None

    async def list_pending(self) -> list[InboxItem]:
        query = (
            select(InboxItemORM)
            .where(
                self._get_team_filter(),
                InboxItemORM.type == InboxItemType.APPROVAL.value,
                InboxItemORM.approved_at.is_(None),
                InboxItemORM.rejected_at.is_(None),
            )
            .order_by(InboxItemORM.created_at)
        )
        result = await self.session.execute(query)
        return [self._orm_to_domain(item_orm) for item_orm in result.scalars().all()]

    def _orm_to_domain(self, item_orm: InboxItemORM) -> InboxItem:
        return InboxItem.model_validate(item_orm).model_copy(deep=True)
