"""Pydantic models for GitHub REST API responses."""

from collections.abc import Sequence

from pydantic import field_validator

from return_dispatch.models.base import Model


class Workflow(Model):
    """A workflow defined in a repository."""

    id: int
    name: str
    path: str


class WorkflowsResponse(Model):
    """Response from list repository workflows API."""

    total_count: int = 0
    workflows: Sequence[Workflow]


class WorkflowRun(Model):
    """A workflow run from GitHub Actions API."""

    id: int
    name: str = ""
    html_url: str

    @field_validator("name", mode="before")
    @classmethod
    def empty_name(cls, value: str | None) -> str:
        return value or ""


class WorkflowRunsResponse(Model):
    """Response from list workflow runs API."""

    total_count: int = 0
    workflow_runs: Sequence[WorkflowRun]


class Repository(Model):
    """Subset of the repository API response."""

    full_name: str
    default_branch: str
