"""Domain events raised on orchestration lifecycle transitions."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_serializer


@dataclass
class DomainEvent:
    """Base for lifecycle events; subclass keyword arguments become ``data``.

    The event type defaults to the subclass name, so subscribers match on
    e.g. ``ChainExecutionCompleted`` without a separate registry.
    """

    event_id: UUID
    timestamp: datetime
    event_type: str
    data: dict[str, Any]

    def __init__(self, **kwargs: Any) -> None:
        self.event_id = kwargs.pop("event_id", uuid4())
        self.timestamp = kwargs.pop("timestamp", datetime.now(UTC))
        self.event_type = kwargs.pop("event_type", self.__class__.__name__)
        self.data = kwargs

    @property
    def team_id(self) -> str | None:
        return self.data.get("team_id")


class EventEnvelope(BaseModel):
    """Serializable form of a ``DomainEvent`` as published to subscribers."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    event_type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime, _info):
        return value.isoformat()

    @property
    def team_id(self) -> str | None:
        return self.data.get("team_id")

    @classmethod
    def from_any(cls, obj: "EventEnvelope | DomainEvent | dict[str, Any]") -> "EventEnvelope":
        if isinstance(obj, EventEnvelope):
            return obj
        if isinstance(obj, DomainEvent):
            return cls(
                event_id=obj.event_id,
                timestamp=obj.timestamp,
                event_type=obj.event_type,
                data=obj.data,
            )
        if isinstance(obj, dict):
            return cls.model_validate(obj)
        raise TypeError(f"Unsupported event type: {type(obj)!r}")

    def as_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
