"""Trigger domain models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from agentorch_common.base.references import EntityRef
from pydantic import BaseModel, Field, field_validator

from .enums import TriggerEntityType


class AgentTrigger(BaseModel):
    """Starts a chain when an entity of ``entity_type`` moves into ``status_to``.

    ``status_from`` of None matches any source status.
    """

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    name: str = Field(..., min_length=1, max_length=255)
    entity_type: TriggerEntityType
    status_from: str | None = None
    status_to: str | None = None
    agent_chain_id: UUID
    trigger_conditions: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    priority: int = 0
    last_triggered_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Trigger name cannot be empty")
        return v.strip()

    @property
    def deduplication_window_minutes(self) -> int | None:
        window = self.trigger_conditions.get("deduplication_window_minutes")
        return int(window) if window is not None else None

    def matches_transition(self, status_from: str | None, status_to: str) -> bool:
        from_matches = self.status_from is None or self.status_from == status_from
        return from_matches and self.status_to == status_to


class TriggerEntity(BaseModel):
    """Snapshot of the entity whose status changed, as supplied by the event source."""

    type: TriggerEntityType
    id: str
    team_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @property
    def ref(self) -> EntityRef:
        return EntityRef.of(self.type.value, self.id)


class TriggerActor(BaseModel):
    """User whose action caused the status change."""

    id: str
    name: str = ""
    email: str | None = None


class TriggerDispatch(BaseModel):
    """One dispatch of a trigger for an entity, used for deduplication."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_trigger_id: UUID
    entity_type: TriggerEntityType
    entity_id: str
    dispatched_at: datetime
    workflow_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True
