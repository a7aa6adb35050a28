"""GitHub REST API client for dispatching and listing workflow runs."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

import aiohttp

from return_dispatch.errors import DispatchError, HttpError
from return_dispatch.github.models import (
    Repository,
    Workflow,
    WorkflowRun,
    WorkflowRunsResponse,
    WorkflowsResponse,
)
from return_dispatch.models.config import ActionConfig

log = logging.getLogger(__name__)

T = TypeVar("T")

# Key under which the correlation marker travels in the dispatch payload
MARKER_KEY = "distinct_id"

# GitHub has answered workflow dispatches with both of these
WORKFLOW_DISPATCH_STATUSES = frozenset({200, 204})
REPOSITORY_DISPATCH_STATUSES = frozenset({204})

# Status reported when no response was received at all
NO_RESPONSE_STATUS = 0

WORKFLOWS_PAGE_SIZE = 100

NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def with_marker(payload: Mapping[str, Any], marker: str | None) -> dict[str, Any]:
    """Copy a dispatch payload with the marker added last, overriding user keys."""
    merged = dict(payload)
    if marker is not None:
        merged[MARKER_KEY] = marker
    return merged


@dataclass(frozen=True, kw_only=True)
class GitHubClient:
    """Authenticated client scoped to the configured repository."""

    config: ActionConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: ActionConfig
    ) -> AsyncGenerator["GitHubClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        # Request paths are relative so a GHES prefix such as /api/v3 is kept
        async with aiohttp.ClientSession(
            base_url=config.api_base_url.rstrip("/") + "/",
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    @property
    def repo_path(self) -> str:
        """API path of the configured repository, relative to the base URL."""
        return f"repos/{self.config.owner}/{self.config.repo}"

    async def dispatch_workflow(
        self,
        workflow_id: int | str,
        ref: str,
        inputs: Mapping[str, str],
        *,
        marker: str | None = None,
    ) -> None:
        """Create a workflow_dispatch event. Never retried.

        When a marker is given it is sent as the distinct_id input,
        replacing any user input of that name.
        """
        url = f"{self.repo_path}/actions/workflows/{workflow_id}/dispatches"
        payload = {"ref": ref, "inputs": with_marker(inputs, marker)}

        await self._post_dispatch(
            "workflow_dispatch", url, payload, WORKFLOW_DISPATCH_STATUSES
        )

        log.info(
            "Dispatched workflow using workflow_dispatch: repository=%s/%s, "
            "ref=%s, workflow_id=%s, inputs=%s",
            self.config.owner,
            self.config.repo,
            ref,
            workflow_id,
            list(payload["inputs"]),
        )

    async def dispatch_repository_event(
        self,
        event_type: str,
        client_payload: Mapping[str, Any],
        *,
        marker: str | None = None,
    ) -> None:
        """Create a repository_dispatch event. Never retried."""
        url = f"{self.repo_path}/dispatches"
        payload = {
            "event_type": event_type,
            "client_payload": with_marker(client_payload, marker),
        }

        await self._post_dispatch(
            "repository_dispatch", url, payload, REPOSITORY_DISPATCH_STATUSES
        )

        log.info(
            "Dispatched workflow using repository_dispatch: repository=%s/%s, "
            "event_type=%s, client_payload=%s",
            self.config.owner,
            self.config.repo,
            event_type,
            list(payload["client_payload"]),
        )

    async def get_repository(self) -> Repository:
        """Fetch repository information, including its default branch."""
        data = await self._get_json("get_repository", self.repo_path)
        repository = Repository.model_validate(data)
        log.debug(
            "Fetched repository %s, default branch: %s",
            repository.full_name,
            repository.default_branch,
        )
        return repository

    async def list_workflows(self) -> Sequence[Workflow]:
        """List all workflows of the repository."""
        return await self._paginate(
            "list_workflows",
            f"{self.repo_path}/actions/workflows",
            {},
            WORKFLOWS_PAGE_SIZE,
            lambda data: WorkflowsResponse.model_validate(data).workflows,
        )

    async def list_workflow_runs(
        self,
        workflow_id: int | str,
        *,
        created: str,
        per_page: int,
        branch: str | None = None,
    ) -> Sequence[WorkflowRun]:
        """List runs of one workflow, optionally filtered by branch."""
        params = {"created": created}
        if branch:
            params["branch"] = branch
        return await self._paginate(
            "list_workflow_runs",
            f"{self.repo_path}/actions/workflows/{workflow_id}/runs",
            params,
            per_page,
            lambda data: WorkflowRunsResponse.model_validate(data).workflow_runs,
        )

    async def list_repository_runs(
        self,
        *,
        created: str,
        per_page: int,
        branch: str,
        event: str,
    ) -> Sequence[WorkflowRun]:
        """List runs of the repository filtered by branch and event."""
        return await self._paginate(
            "list_repository_runs",
            f"{self.repo_path}/actions/runs",
            {"created": created, "branch": branch, "event": event},
            per_page,
            lambda data: WorkflowRunsResponse.model_validate(data).workflow_runs,
        )

    async def _post_dispatch(
        self,
        operation: str,
        url: str,
        payload: Mapping[str, Any],
        accepted: frozenset[int],
    ) -> None:
        try:
            async with self.session.post(url, json=payload) as response:
                if response.status not in accepted:
                    text = await response.text()
                    raise DispatchError(operation, response.status, text)
        except NETWORK_ERRORS as error:
            raise DispatchError(operation, NO_RESPONSE_STATUS, repr(error)) from error

    async def _get_json(
        self, operation: str, url: str, params: Mapping[str, str] | None = None
    ) -> Any:
        try:
            async with self.session.get(url, params=params) as response:
                if response.status != 200:
                    text = await response.text()
                    raise HttpError(operation, response.status, text)
                return await response.json()
        except NETWORK_ERRORS as error:
            raise HttpError(operation, NO_RESPONSE_STATUS, repr(error)) from error

    async def _paginate(
        self,
        operation: str,
        url: str,
        params: Mapping[str, str],
        per_page: int,
        extract: Callable[[Any], Sequence[T]],
    ) -> Sequence[T]:
        """Fetch every page of a list endpoint.

        Stops at the first page holding fewer than per_page items.
        """
        items: list[T] = []
        page = 1

        while True:
            page_params = {**params, "per_page": str(per_page), "page": str(page)}
            data = await self._get_json(operation, url, page_params)
            page_items = extract(data)
            log.debug(
                "%s: fetched page %d (%d item(s))", operation, page, len(page_items)
            )
            items.extend(page_items)

            if len(page_items) < per_page:
                break

            page += 1

        return items
