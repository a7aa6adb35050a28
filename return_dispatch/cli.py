"""CLI entry point for the return-dispatch action."""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from return_dispatch.config import resolve_config
from return_dispatch.errors import ReturnDispatchError
from return_dispatch.github.client import GitHubClient
from return_dispatch.orchestrator import DispatchOutcome, ReturnDispatchOrchestrator

INPUT_NAMES = (
    "dispatch-method",
    "owner",
    "repo",
    "token",
    "ref",
    "workflow",
    "event-type",
    "workflow-inputs",
    "discover",
    "starting-delay-ms",
    "max-attempts",
    "time-multiple",
    "api-url",
)


def input_env_var(name: str) -> str:
    """Environment variable GitHub Actions uses for an action input."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def write_outputs(outputs: Mapping[str, str], output_path: Path | None) -> None:
    """Append action outputs to the GITHUB_OUTPUT file."""
    if not outputs or output_path is None:
        return
    with output_path.open("a", encoding="utf-8") as output_file:
        for key, value in outputs.items():
            output_file.write(f"{key}={value}\n")


async def run(raw_inputs: Mapping[str, str], output_path: Path | None = None) -> int:
    """Dispatch the workflow and return exit code."""
    log = logging.getLogger("return_dispatch")

    try:
        config = resolve_config(raw_inputs)
        log.info(
            "Dispatching %s to %s/%s", config.dispatch_method, config.owner, config.repo
        )

        async with GitHubClient.from_config(config) as client:
            orchestrator = ReturnDispatchOrchestrator(client=client, config=config)
            outcome = await orchestrator.run()
    except ReturnDispatchError as error:
        log.error("Failed to complete: %s", error)
        log.warning("Does the token have the correct permissions?")
        log.debug("Failure details", exc_info=error)
        return 1

    outputs = outcome.as_outputs()
    write_outputs(outputs, output_path)
    print(json.dumps(format_output(outcome)))
    return 0


def format_output(outcome: DispatchOutcome) -> dict[str, int | str | None]:
    """Format the dispatch outcome for JSON output."""
    return {"run_id": outcome.run_id, "run_url": outcome.run_url}


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Dispatch a GitHub Actions workflow and return its run ID"
    )
    for name in INPUT_NAMES:
        parser.add_argument(
            f"--{name}",
            dest=name,
            default=os.environ.get(input_env_var(name), ""),
            help=f"Action input '{name}' (default: ${input_env_var(name)})",
        )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if os.environ.get("RUNNER_DEBUG") == "1" else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    github_output = os.environ.get("GITHUB_OUTPUT")
    exit_code = asyncio.run(
        run(
            raw_inputs=vars(args),
            output_path=Path(github_output) if github_output else None,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
