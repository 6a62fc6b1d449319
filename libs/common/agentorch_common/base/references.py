"""Polymorphic entity references.

Records that point at "some entity" (an inbox item's approvable, an execution's
triggering work order) store a ``(type, id)`` pair. Loaders registered per type
tag turn a reference back into the entity.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

EntityLoader = Callable[[str], Awaitable[Any | None]]


class EntityRef(BaseModel):
    """Tagged reference to an entity owned by another part of the system."""

    type: str = Field(..., min_length=1, description="Type tag, e.g. 'work_order'")
    id: str = Field(..., min_length=1, description="Identifier within the type")

    class Config:
        frozen = True

    @classmethod
    def of(cls, type: str, id: Any) -> "EntityRef":
        return cls(type=type, id=str(id))

    @classmethod
    def from_columns(cls, type: str | None, id: Any) -> "EntityRef | None":
        """Build a reference from a nullable ``*_type``/``*_id`` column pair."""
        if not type or id is None:
            return None
        return cls(type=type, id=str(id))

    def __str__(self) -> str:
        return f"{self.type}:{self.id}"


class EntityLoaderRegistry:
    """Resolves entity references through loaders registered per type tag."""

    def __init__(self):
        self._loaders: dict[str, EntityLoader] = {}

    def register(self, type: str, loader: EntityLoader) -> None:
        self._loaders[type] = loader

    def has(self, type: str) -> bool:
        return type in self._loaders

    async def resolve(self, ref: EntityRef | None) -> Any | None:
        """Load the referenced entity, or None when the type has no loader."""
        if ref is None:
            return None
        loader = self._loaders.get(ref.type)
        if loader is None:
            return None
        return await loader(ref.id)
