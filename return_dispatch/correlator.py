"""Correlation of a dispatch with the workflow run it created.

GitHub's dispatch endpoints return no handle to the run they create. The
dispatch payload therefore carries a distinct marker, and the remote workflow
is expected to echo it in its run name, e.g.

    run-name: Build [${{ inputs.distinct_id }}]

Runs created since the dispatch are listed until one whose name contains the
marker shows up. A workflow that does not echo the marker is never found.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from return_dispatch.backoff import BackoffPolicy, Sleep, execute
from return_dispatch.errors import HttpError, NotFoundError
from return_dispatch.github.client import GitHubClient
from return_dispatch.github.models import WorkflowRun
from return_dispatch.models.config import ActionConfig, DispatchMethod
from return_dispatch.refs import branch_name_from_ref

log = logging.getLogger(__name__)

# Tolerated clock skew between the runner and the GitHub API
CLOCK_DRIFT = timedelta(seconds=5)

BRANCH_PAGE_SIZE = 5
UNFILTERED_PAGE_SIZE = 10


def find_dispatched_run(runs: Sequence[WorkflowRun], marker: str) -> WorkflowRun:
    """Return the first run whose name contains the marker.

    Raises:
        NotFoundError: If no run carries the marker

    """
    for run in runs:
        if marker in run.name:
            return run

    raise NotFoundError(f"Failed to find dispatched workflow run with {marker}")


def created_filter(since: datetime) -> str:
    """Build the `created` search qualifier for runs created after `since`."""
    floor = since - CLOCK_DRIFT
    return f">{floor.strftime('%Y-%m-%dT%H:%M:%SZ')}"


async def fetch_candidate_runs(
    client: GitHubClient,
    config: ActionConfig,
    workflow_id: int | str | None,
    since: datetime,
) -> Sequence[WorkflowRun]:
    """List runs that may have been created by the dispatch.

    For workflow_dispatch the runs of the dispatched workflow are filtered by
    the branch of `ref`; tag refs cannot be filtered by branch, so a larger
    unfiltered page is fetched instead. repository_dispatch always runs on the
    default branch, which is looked up first.
    """
    created = created_filter(since)

    if config.dispatch_method == DispatchMethod.WORKFLOW_DISPATCH:
        if workflow_id is None:
            raise ValueError("workflow_dispatch requires a workflow ID")
        branch = branch_name_from_ref(config.ref)
        runs = await client.list_workflow_runs(
            workflow_id,
            created=created,
            branch=branch,
            per_page=BRANCH_PAGE_SIZE if branch else UNFILTERED_PAGE_SIZE,
        )
    else:
        repository = await client.get_repository()
        branch = repository.default_branch
        runs = await client.list_repository_runs(
            created=created,
            branch=branch,
            event=DispatchMethod.REPOSITORY_DISPATCH.value,
            per_page=BRANCH_PAGE_SIZE,
        )

    log.debug(
        "Fetched workflow runs: repository=%s/%s, branch=%s, runs=%s",
        config.owner,
        config.repo,
        branch,
        [run.id for run in runs],
    )
    return runs


async def discover_run(
    client: GitHubClient,
    config: ActionConfig,
    *,
    workflow_id: int | str | None,
    marker: str,
    since: datetime,
    policy: BackoffPolicy,
    sleep: Sleep,
) -> WorkflowRun:
    """Poll for the run carrying the marker until found or out of attempts.

    Listing errors and missing runs both mean "not yet available" and are
    retried; RetryExhaustedError is raised once the attempts run out.
    """

    async def attempt() -> WorkflowRun:
        runs = await fetch_candidate_runs(client, config, workflow_id, since)
        return find_dispatched_run(runs, marker)

    return await execute(
        attempt,
        policy,
        retry_on=(HttpError, NotFoundError),
        sleep=sleep,
    )
