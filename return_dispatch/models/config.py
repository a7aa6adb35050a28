"""Validated action configuration."""

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Self

from pydantic import Field, SecretStr, model_validator

from return_dispatch.backoff import BackoffPolicy
from return_dispatch.models.base import Model

DEFAULT_STARTING_DELAY_MS = 200
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_TIME_MULTIPLE = 2


class DispatchMethod(StrEnum):
    """Mechanism used to trigger the remote workflow."""

    REPOSITORY_DISPATCH = "repository_dispatch"
    WORKFLOW_DISPATCH = "workflow_dispatch"


class ActionConfig(Model):
    """Configuration built once per invocation and never mutated."""

    dispatch_method: DispatchMethod
    owner: str
    repo: str
    token: SecretStr
    ref: str | None = Field(
        default=None, description="Branch or tag, workflow_dispatch only"
    )
    workflow: int | str | None = Field(
        default=None, description="Workflow ID or file name, workflow_dispatch only"
    )
    event_type: str | None = Field(
        default=None, description="Event type, repository_dispatch only"
    )
    workflow_inputs: Mapping[str, Any] = Field(default_factory=dict)
    discover: bool = False
    starting_delay_ms: float = DEFAULT_STARTING_DELAY_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    time_multiple: float = DEFAULT_TIME_MULTIPLE
    api_base_url: str = "https://api.github.com"

    @model_validator(mode="after")
    def check_method_fields(self) -> Self:
        if self.dispatch_method == DispatchMethod.WORKFLOW_DISPATCH:
            if not self.ref or self.workflow in (None, ""):
                raise ValueError("workflow_dispatch requires 'ref' and 'workflow'")
            if self.event_type:
                raise ValueError("workflow_dispatch does not accept 'event_type'")
        else:
            if not self.event_type:
                raise ValueError("repository_dispatch requires 'event_type'")
            if self.ref or self.workflow not in (None, ""):
                raise ValueError(
                    "repository_dispatch does not accept 'ref' or 'workflow'"
                )
        return self

    @property
    def backoff_policy(self) -> BackoffPolicy:
        """Retry settings for read-only API calls."""
        return BackoffPolicy(
            starting_delay_ms=self.starting_delay_ms,
            max_attempts=self.max_attempts,
            time_multiple=self.time_multiple,
        )
