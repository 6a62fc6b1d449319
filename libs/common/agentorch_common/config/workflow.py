"""Job queue (Temporal) configuration."""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from .base import BaseAppSettings


class WorkflowSettings(BaseAppSettings):
    """Temporal connection and worker configuration."""

    TEMPORAL_SERVER_URL: str = "localhost:7233"
    TEMPORAL_NAMESPACE: str = "default"
    TEMPORAL_TASK_QUEUE: str = "agent-orchestration"

    # Worker settings
    TEMPORAL_MAX_CONCURRENT_ACTIVITIES: int = 10
    TEMPORAL_MAX_CONCURRENT_WORKFLOWS: int = 5

    ACTIVITY_TIMEOUT_MINUTES: int = Field(
        default=30, description="start_to_close timeout for orchestration activities"
    )

    model_config = SettingsConfigDict(env_prefix="WORKFLOW__")
