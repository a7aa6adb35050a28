"""Resolution of workflow file names to workflow IDs."""

import logging

from return_dispatch.backoff import BackoffPolicy, Sleep, execute
from return_dispatch.errors import HttpError, NotFoundError
from return_dispatch.github.client import GitHubClient

log = logging.getLogger(__name__)


async def resolve_workflow_id(client: GitHubClient, filename: str) -> int:
    """Return the ID of the first workflow whose path contains the file name.

    Raises:
        HttpError: If listing the workflows fails
        NotFoundError: If no workflow path contains the file name

    """
    workflows = await client.list_workflows()

    for workflow in workflows:
        if filename in workflow.path:
            return workflow.id

    raise NotFoundError(f"Unable to find ID for workflow: {filename}")


async def resolve_workflow_id_with_retries(
    client: GitHubClient, filename: str, policy: BackoffPolicy, sleep: Sleep
) -> int:
    """Resolve a workflow ID, retrying failed lookups with backoff."""
    log.info("Fetching workflow ID for %s", filename)
    workflow_id = await execute(
        lambda: resolve_workflow_id(client, filename),
        policy,
        retry_on=(HttpError, NotFoundError),
        sleep=sleep,
    )
    log.info("Fetched workflow ID: %d", workflow_id)
    return workflow_id
