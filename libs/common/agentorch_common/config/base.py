"""Shared base for the engine's settings groups.

Every group (database, broker, workflow, orchestration) reads the process
environment first and ``.env`` second. Variables belonging to other groups
are ignored, so the worker, the CLI and the test suite share one ``.env``.
"""

from typing import Any, Self

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"


class BaseAppSettings(BaseSettings):
    """One settings group of the orchestration engine."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding="utf-8", extra="ignore"
    )

    def with_overrides(self, **values: Any) -> Self:
        """Validated copy with ``values`` applied; None leaves a setting unchanged.

        Used for command line flags, so the cached process settings are never
        mutated in place.
        """
        update = {name: value for name, value in values.items() if value is not None}
        if not update:
            return self
        unknown = set(update) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown {type(self).__name__} fields: {sorted(unknown)}")
        return type(self).model_validate({**self.model_dump(), **update})
