"""GitHub REST API access."""

from return_dispatch.github.client import GitHubClient
from return_dispatch.github.models import Repository, Workflow, WorkflowRun

__all__ = ["GitHubClient", "Repository", "Workflow", "WorkflowRun"]
