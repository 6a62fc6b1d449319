"""Typed chain definitions.

``chain_definition`` JSON is parsed into these models at the repository and
service boundary, so malformed chains are rejected before they are stored or
executed.
"""

from typing import Any
from uuid import UUID

from agentorch_common.exceptions import ChainDefinitionError
from pydantic import BaseModel, Field, ValidationError, model_validator

from .enums import BranchAction, ExecutionMode


class ContextFilterRules(BaseModel):
    """Which keys of prior step outputs a step sees. Include wins over exclude."""

    context_include: list[str] = Field(default_factory=list)
    context_exclude: list[str] = Field(default_factory=list)


class NextStepCondition(BaseModel):
    """Branching rule evaluated after a step completes.

    A rule without ``condition`` always matches.
    """

    condition: str | None = None
    action: BranchAction = BranchAction.GOTO
    target_step: int | None = Field(default=None, ge=0)


class OutputTransformerConfig(BaseModel):
    """Transform applied to a step's output before it is recorded.

    ``type`` selects the transform; the remaining keys (``separator``,
    ``keys``, ``mappings``, ``fields``) are its options.
    """

    type: str = Field(..., min_length=1)

    model_config = {"extra": "allow"}


class ChainStepDefinition(BaseModel):
    agent_id: UUID
    workflow_class: str | None = None
    execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    step_group: str | None = None
    context_filter_rules: ContextFilterRules = Field(default_factory=ContextFilterRules)
    output_transformer: OutputTransformerConfig | None = None
    next_step_conditions: list[NextStepCondition] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_parallel_group(self) -> "ChainStepDefinition":
        if self.execution_mode is ExecutionMode.PARALLEL and not self.step_group:
            raise ValueError("Parallel steps must declare a step_group")
        return self

    @property
    def is_parallel(self) -> bool:
        return self.execution_mode is ExecutionMode.PARALLEL and self.step_group is not None

    def filter_rules(self) -> dict[str, list[str]]:
        return self.context_filter_rules.model_dump()


class ChainDefinition(BaseModel):
    steps: list[ChainStepDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_goto_targets(self) -> "ChainDefinition":
        for index, step in enumerate(self.steps):
            for rule in step.next_step_conditions:
                if rule.target_step is not None and rule.target_step >= len(self.steps):
                    raise ValueError(
                        f"Step {index} branches to step {rule.target_step}, "
                        f"but the chain has {len(self.steps)} steps"
                    )
        return self

    @classmethod
    def parse(cls, raw: "dict[str, Any] | ChainDefinition | None") -> "ChainDefinition":
        """Validate raw ``chain_definition`` JSON, raising ``ChainDefinitionError``."""
        if isinstance(raw, ChainDefinition):
            return raw
        try:
            return cls.model_validate(raw or {})
        except ValidationError as e:
            raise ChainDefinitionError(f"Invalid chain definition: {e}") from e

    def step(self, index: int) -> ChainStepDefinition | None:
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    def group_indices(self, step_group: str) -> list[int]:
        return [index for index, step in enumerate(self.steps) if step.step_group == step_group]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
