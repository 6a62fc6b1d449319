"""Context value objects handed to agents."""

import operator
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .formatting import estimate_tokens, format_key, format_section, format_value


class AgentContext(BaseModel):
    """Assembled project, client and organization context for one agent run.

    Treated as immutable: the ``with_*`` helpers return new instances.
    """

    project_context: dict[str, Any] = Field(default_factory=dict)
    client_context: dict[str, Any] = Field(default_factory=dict)
    org_context: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_prompt_string(self) -> str:
        sections = [
            ("Organization Context", self.org_context),
            ("Client Context", self.client_context),
            ("Project Context", self.project_context),
            ("Context Metadata", self.metadata),
        ]
        return "\n\n".join(format_section(title, data) for title, data in sections if data)

    def token_estimate(self) -> int:
        return estimate_tokens(self.to_prompt_string())

    def is_empty(self) -> bool:
        return not (
            self.project_context or self.client_context or self.org_context or self.metadata
        )

    def with_project_context(self, data: dict[str, Any]) -> "AgentContext":
        return self.model_copy(update={"project_context": {**self.project_context, **data}})

    def with_client_context(self, data: dict[str, Any]) -> "AgentContext":
        return self.model_copy(update={"client_context": {**self.client_context, **data}})

    def with_org_context(self, data: dict[str, Any]) -> "AgentContext":
        return self.model_copy(update={"org_context": {**self.org_context, **data}})

    def with_metadata(self, data: dict[str, Any]) -> "AgentContext":
        return self.model_copy(update={"metadata": {**self.metadata, **data}})

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_context": self.project_context,
            "client_context": self.client_context,
            "org_context": self.org_context,
            "metadata": self.metadata,
            "token_estimate": self.token_estimate(),
        }


class StepOutput(BaseModel):
    """Recorded output of one chain step."""

    output: dict[str, Any] = Field(default_factory=dict)
    agent_id: str | None = None
    completed_at: str | None = None


# Checked in this order; the first operator found in the condition wins.
CONDITION_OPERATORS = ("==", "!=", ">", "<", ">=", "<=", "contains", "not_contains")

_NUMERIC_COMPARATORS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


class ChainContext(BaseModel):
    """Context accumulated across the steps of one chain execution.

    Stored as the execution's ``chain_context`` JSON column:
    ``{steps: {"<index>": {output, agent_id, completed_at}}, accumulated_context,
    metadata, pause_reason?, resume_data?}``.
    """

    steps: dict[int, StepOutput] = Field(default_factory=dict)
    accumulated_context: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ChainContext":
        data = data or {}
        steps = {
            int(index): StepOutput.model_validate(step)
            for index, step in (data.get("steps") or {}).items()
        }
        return cls(
            steps=steps,
            accumulated_context=dict(data.get("accumulated_context") or {}),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "steps": {
                str(index): step.model_dump() for index, step in sorted(self.steps.items())
            },
            "accumulated_context": dict(self.accumulated_context),
            "metadata": dict(self.metadata),
        }
        if "pause_reason" in self.metadata:
            result["pause_reason"] = self.metadata["pause_reason"]
        if "resume_data" in self.metadata:
            result["resume_data"] = self.metadata["resume_data"]
        return result

    def with_step_output(
        self, step_index: int, output: dict[str, Any], agent_id: Any = None
    ) -> "ChainContext":
        step = StepOutput(
            output=dict(output),
            agent_id=str(agent_id) if agent_id is not None else None,
            completed_at=datetime.now().isoformat(),
        )
        return self.model_copy(
            update={
                "steps": {**self.steps, step_index: step},
                "accumulated_context": {
                    **self.accumulated_context,
                    f"step_{step_index}": dict(output),
                },
            }
        )

    def get_output_for_step(self, step_index: int) -> dict[str, Any] | None:
        step = self.steps.get(step_index)
        return step.output if step else None

    def get_all_outputs(self) -> dict[int, dict[str, Any]]:
        """Step outputs ordered by step index."""
        return {index: step.output for index, step in sorted(self.steps.items())}

    def filter(
        self, include: list[str] | None = None, exclude: list[str] | None = None
    ) -> "ChainContext":
        """Apply include/exclude key rules to every step output."""
        filtered = {
            index: step.model_copy(update={"output": filter_output(step.output, include, exclude)})
            for index, step in self.steps.items()
        }
        return self.model_copy(
            update={"steps": filtered, "metadata": {**self.metadata, "filtered": True}}
        )

    def with_metadata(self, data: dict[str, Any]) -> "ChainContext":
        return self.model_copy(update={"metadata": {**self.metadata, **data}})

    def with_pause_reason(self, reason: str) -> "ChainContext":
        return self.with_metadata({"pause_reason": reason})

    def with_resume_data(self, resume_data: dict[str, Any]) -> "ChainContext":
        return self.with_metadata({"resume_data": resume_data})

    def is_empty(self) -> bool:
        return not self.steps and not self.accumulated_context

    def completed_step_count(self) -> int:
        return len(self.steps)

    def to_prompt_string(self) -> str:
        parts = []
        if self.steps:
            lines = ["## Previous Step Outputs"]
            for index, step in sorted(self.steps.items()):
                lines.append(f"### Step {index}")
                for key, value in step.output.items():
                    lines.append(
                        f"- **{format_key(key)}**: {format_value(value, expand_lists=False)}"
                    )
            parts.append("\n".join(lines))
        if self.accumulated_context:
            parts.append(
                format_section("Accumulated Context", self.accumulated_context, expand_lists=False)
            )
        if self.metadata:
            parts.append(format_section("Chain Metadata", self.metadata, expand_lists=False))
        return "\n\n".join(parts)

    def token_estimate(self) -> int:
        return estimate_tokens(self.to_prompt_string())

    def evaluate_condition(self, condition: str) -> bool:
        """Evaluate ``<dot.path> <operator> <value>`` against this context.

        Example: ``steps.0.output.recommendation == "approved"``. Conditions
        that cannot be parsed, or whose path does not resolve, are false.
        """
        for op in CONDITION_OPERATORS:
            separator = f" {op} "
            if separator in condition:
                path, expected = condition.split(separator, 1)
                break
        else:
            return False

        actual = self.get_value(path.strip())
        if actual is None:
            return False
        return compare_values(actual, op, expected.strip().strip("\"' "))

    def get_value(self, path: str) -> Any:
        data: Any = self.to_dict()
        for segment in path.split("."):
            if isinstance(data, dict) and segment in data:
                data = data[segment]
            elif isinstance(data, list) and segment.isdigit() and int(segment) < len(data):
                data = data[int(segment)]
            else:
                return None
        return data


def filter_output(
    output: dict[str, Any], include: list[str] | None = None, exclude: list[str] | None = None
) -> dict[str, Any]:
    """Keep only ``include`` keys, then drop ``exclude`` keys.

    A key listed in both survives: include wins.
    """
    if include:
        return {key: value for key, value in output.items() if key in include}
    if exclude:
        return {key: value for key, value in output.items() if key not in exclude}
    return dict(output)


def compare_values(actual: Any, op: str, expected: str) -> bool:
    if op == "==":
        return stringify(actual) == expected
    if op == "!=":
        return stringify(actual) != expected
    if op in _NUMERIC_COMPARATORS:
        actual_number = to_number(actual)
        expected_number = to_number(expected)
        if actual_number is None or expected_number is None:
            return False
        return _NUMERIC_COMPARATORS[op](actual_number, expected_number)
    if op == "contains":
        return isinstance(actual, str) and expected in actual
    if op == "not_contains":
        return isinstance(actual, str) and expected not in actual
    return False


def stringify(value: Any) -> str:
    """String form used by equality conditions; booleans are ``true``/``false``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str | int | float):
        return str(value)
    return format_value(value, expand_lists=False)


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
