"""Publishes orchestration events to Redis pub/sub through faststream."""

import json
import logging
from typing_extensions import override

from faststream.redis import RedisBroker

from .base_events import DomainEvent, EventEnvelope
from .broker import EventBroker

logger = logging.getLogger(__name__)


class RedisEventBroker(EventBroker):
    """Publishes each event on ``<prefix>.<event_type>``.

    Events carrying a ``team_id`` are additionally routed under the team,
    ``<prefix>.team.<team_id>.<event_type>``, so team dashboards can subscribe
    with a single pattern.
    """

    def __init__(self, redis_broker: RedisBroker, channel_prefix: str = ""):
        self.redis_broker = redis_broker
        self.channel_prefix = channel_prefix
        self._connected = False

    async def _ensure_connected(self) -> None:
        if self._connected:
            return
        try:
            await self.redis_broker.connect()
        except Exception as e:
            logger.warning(f"Failed to connect Redis event broker: {e}")
            raise
        self._connected = True
        logger.info("Redis event broker connected")

    @override
    async def publish(self, event: DomainEvent | EventEnvelope) -> None:
        await self._ensure_connected()

        envelope = EventEnvelope.from_any(event)
        message = json.dumps(envelope.as_json_dict())
        for channel in self.channels_for(envelope):
            logger.debug(f"Publishing {envelope.event_type} to {channel}")
            await self.redis_broker.publish(message=message, channel=channel)

    def channels_for(self, envelope: EventEnvelope) -> list[str]:
        names = [envelope.event_type]
        if envelope.team_id:
            names.append(f"team.{envelope.team_id}.{envelope.event_type}")
        if self.channel_prefix:
            return [f"{self.channel_prefix}.{name}" for name in names]
        return names

    async def close(self) -> None:
        if self._connected:
            await self.redis_broker.close()
            self._connected = False
            logger.info("Redis event broker disconnected")
