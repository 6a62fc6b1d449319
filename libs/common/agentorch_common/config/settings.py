"""Main application settings container."""

from functools import lru_cache

from pydantic import Field

from .base import BaseAppSettings
from .broker import RedisSettings
from .database import DatabaseSettings
from .orchestration import OrchestrationSettings
from .workflow import WorkflowSettings


class Settings(BaseAppSettings):
    """Main application settings container."""

    database: DatabaseSettings
    broker: RedisSettings
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)


@lru_cache
def get_settings() -> Settings:
    """Get the main application settings."""
    return Settings(
        database=DatabaseSettings(),
        broker=RedisSettings(),
        workflow=WorkflowSettings(),
        orchestration=OrchestrationSettings(),
    )


@lru_cache
def get_orchestration_settings() -> OrchestrationSettings:
    """Get orchestration settings without building the full container."""
    return OrchestrationSettings()
