"""Agent orchestration configuration settings."""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from .base import BaseAppSettings


class OrchestrationSettings(BaseAppSettings):
    """Tunables for context building, chain execution and trigger dispatch."""

    # Context building
    CONTEXT_MAX_TOKENS: int = Field(
        default=4000, description="Default token budget for an assembled agent context"
    )
    CONTEXT_CHARS_PER_TOKEN: int = Field(
        default=4, description="Characters per token used by the token estimator"
    )
    CONTEXT_NOTES_MAX_LENGTH: int = Field(
        default=500, description="Client notes longer than this are truncated"
    )

    # Chain execution
    CHAIN_MAX_AUTO_STEPS: int = Field(
        default=100, description="Upper bound on steps advanced by one trigger job"
    )

    # Trigger dispatch
    TRIGGER_DEDUP_WINDOW_MINUTES: int | None = Field(
        default=None,
        description="Deduplication window for triggers that do not set one; None disables it",
    )

    # Job retry policy
    JOB_RETRY_ATTEMPTS: int = Field(default=3, description="Attempts per orchestration job")
    JOB_RETRY_BACKOFF_SECONDS: int = Field(
        default=60, description="Initial backoff between orchestration job attempts"
    )

    # Tool gateway
    TOOL_CATEGORY_APPROVAL_ACTIONS: dict[str, str] = Field(
        default_factory=lambda: {
            "email": "external_sends",
            "financial": "financial",
            "contracts": "contracts",
            "scope_changes": "scope_changes",
        },
        description="Tool category to approval action class used by the tool gateway",
    )
    TOOL_DEFINITIONS_PATH: str | None = Field(
        default=None, description="Directory of declarative tool definition JSON files"
    )

    # Workflow classes started by the orchestrator
    PM_COPILOT_WORKFLOW_CLASS: str = Field(
        default="pm_copilot", description="Workflow class used for PM copilot runs"
    )
    PM_COPILOT_AGENT_CODE: str = Field(
        default="pm-copilot", description="Code of the agent that runs PM copilot jobs"
    )

    model_config = SettingsConfigDict(env_prefix="AGENT_")
