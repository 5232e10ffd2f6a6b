"""Settings for the git wrapper."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_RETRY_TIMEOUT = 500
DEFAULT_MAX_RETRIES = 5

# Environment variable -> settings field
_ENV_FIELDS = {
    "PIPEGIT_CREDENTIALS_ID": "credentials_id",
    "PIPEGIT_RETRY_TIMEOUT": "retry_timeout",
    "PIPEGIT_MAX_RETRIES": "max_retries",
    "PIPEGIT_REMOTE": "remote",
}


class GitSettings(BaseModel):
    """Settings for credential handling and retries of git calls."""

    model_config = ConfigDict(validate_assignment=True)

    credentials_id: str | None = Field(default=None, min_length=1)
    retry_timeout: int = Field(
        default=DEFAULT_RETRY_TIMEOUT, ge=0, description="Milliseconds between retries"
    )
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    remote: str = Field(default="origin", min_length=1)
    github_pages_branch: str = Field(default="gh-pages", min_length=1)
    github_pages_dir: str = Field(default=".gh-pages", min_length=1)

    @classmethod
    def from_env(cls, **overrides: Any) -> GitSettings:
        """Build settings from PIPEGIT_* environment variables.

        Args:
            **overrides: Field values that take precedence over the environment.
                         None values are ignored.

        Raises:
            pydantic.ValidationError: If a value is invalid.
        """
        values: dict[str, Any] = {}
        for variable, field_name in _ENV_FIELDS.items():
            value = os.environ.get(variable)
            if value:
                values[field_name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
