from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .enums import MemoryScope


class AgentMemory(BaseModel):
    """One stored memory value."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_id: UUID | None = None
    scope: MemoryScope
    scope_type: str
    scope_id: str
    key: str = Field(..., min_length=1, max_length=255)
    value: Any = None
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now())
