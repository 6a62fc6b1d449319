"""Event broker configuration settings."""

from .base import BaseAppSettings


class RedisSettings(BaseAppSettings):
    """Redis broker configuration."""

    REDIS_URL: str = "redis://localhost:6379"
    EVENT_CHANNEL_PREFIX: str = "agentorch"
