"""Orchestrates a single dispatch and the discovery of its run."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from return_dispatch.backoff import Sleep
from return_dispatch.correlator import discover_run
from return_dispatch.github.client import GitHubClient
from return_dispatch.models.config import ActionConfig, DispatchMethod
from return_dispatch.workflow_resolver import resolve_workflow_id_with_retries

log = logging.getLogger(__name__)


class DispatchStage(StrEnum):
    """Stages a dispatch goes through."""

    CONFIG_VALIDATED = "config_validated"
    WORKFLOW_ID_RESOLVED = "workflow_id_resolved"
    DISPATCHED = "dispatched"
    DONE = "done"
    RUN_DISCOVERED = "run_discovered"
    FAILED = "failed"


@dataclass(frozen=True, kw_only=True)
class DispatchOutcome:
    """Outputs of a dispatch; empty unless discovery succeeded."""

    run_id: int | None = None
    run_url: str | None = None

    def as_outputs(self) -> dict[str, str]:
        """Action outputs to publish."""
        if self.run_id is None or self.run_url is None:
            return {}
        return {"run-id": str(self.run_id), "run-url": self.run_url}


@dataclass(frozen=True, kw_only=True)
class ReturnDispatchOrchestrator:
    """Sequences workflow resolution, dispatch and run discovery."""

    client: GitHubClient
    config: ActionConfig
    marker: str = field(default_factory=lambda: str(uuid.uuid4()))
    sleep: Sleep = field(default=asyncio.sleep, repr=False)

    async def run(self) -> DispatchOutcome:
        """Dispatch the workflow and, if enabled, discover the created run.

        The dispatch is sent exactly once. If discovery fails afterwards the
        error propagates, but the dispatched run is left as it is.
        """
        self._enter(DispatchStage.CONFIG_VALIDATED)
        policy = self.config.backoff_policy
        log.info(
            "Exponential backoff parameters: starting-delay=%sms, "
            "max-attempts=%d, time-multiple=%s",
            policy.starting_delay_ms,
            policy.max_attempts,
            policy.time_multiple,
        )

        try:
            workflow_id = await self._resolve_workflow_id()

            dispatch_time = datetime.now(timezone.utc)
            await self._dispatch(workflow_id)
            self._enter(DispatchStage.DISPATCHED)

            if not self.config.discover:
                log.info("Workflow dispatched, skipping the retrieval of the run ID")
                self._enter(DispatchStage.DONE)
                return DispatchOutcome()

            log.info("Fetching run IDs for workflow with distinct_id=%s", self.marker)
            run = await discover_run(
                self.client,
                self.config,
                workflow_id=workflow_id,
                marker=self.marker,
                since=dispatch_time,
                policy=policy,
                sleep=self.sleep,
            )
        except Exception:
            self._enter(DispatchStage.FAILED)
            raise

        log.info("Identified remote run: run-id=%d, run-url=%s", run.id, run.html_url)
        self._enter(DispatchStage.RUN_DISCOVERED)
        return DispatchOutcome(run_id=run.id, run_url=run.html_url)

    async def _resolve_workflow_id(self) -> int | str | None:
        workflow = self.config.workflow
        if not isinstance(workflow, str):
            return workflow

        workflow_id = await resolve_workflow_id_with_retries(
            self.client, workflow, self.config.backoff_policy, self.sleep
        )
        self._enter(DispatchStage.WORKFLOW_ID_RESOLVED)
        return workflow_id

    async def _dispatch(self, workflow_id: int | str | None) -> None:
        marker = self.marker if self.config.discover else None
        if self.config.dispatch_method == DispatchMethod.WORKFLOW_DISPATCH:
            if workflow_id is None or not self.config.ref:
                raise ValueError("workflow_dispatch requires a workflow and a ref")
            await self.client.dispatch_workflow(
                workflow_id, self.config.ref, self.config.workflow_inputs, marker=marker
            )
        else:
            await self.client.dispatch_repository_event(
                self.config.event_type or "", self.config.workflow_inputs, marker=marker
            )

    def _enter(self, stage: DispatchStage) -> None:
        log.debug("Stage: %s", stage)
