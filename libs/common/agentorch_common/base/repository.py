"""Simple base repository for unscoped catalog records."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .unit_of_work import in_transaction

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository providing basic CRUD operations.

    Subclasses set ``model_class``.
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, id: UUID | str) -> T | None:
        """Get a record by ID."""
        return await self.session.get(self.model_class, id)

    async def list(self, **filters: Any) -> list[T]:
        """List all records, optionally filtered by column values."""
        query = select(self.model_class)
        for field, value in filters.items():
            if hasattr(self.model_class, field):
                query = query.where(getattr(self.model_class, field) == value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, entity: T) -> T:
        """Create a new record."""
        self.session.add(entity)
        await self._commit()
        await self.session.refresh(entity)
        return entity

    async def delete(self, id: UUID | str) -> bool:
        """Delete a record by ID."""
        record = await self.session.get(self.model_class, id)
        if record is None:
            return False

        await self.session.delete(record)
        await self._commit()
        return True

    async def _commit(self) -> None:
        if in_transaction(self.session):
            await self.session.flush()
        else:
            await self.session.commit()
