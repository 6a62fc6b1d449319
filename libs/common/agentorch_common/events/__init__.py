from .base_events import DomainEvent, EventEnvelope
from .broker import EventBroker

__all__ = ["DomainEvent", "EventBroker", "EventEnvelope"]
