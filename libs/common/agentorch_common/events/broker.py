from abc import ABC, abstractmethod

from .base_events import DomainEvent, EventEnvelope


class EventBroker(ABC):
    @abstractmethod
    async def publish(self, event: DomainEvent | EventEnvelope) -> None:
        """Publish an event through the broker."""
        raise NotImplementedError
