"""Resolution of raw action inputs into a validated configuration."""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import SecretStr

from return_dispatch.errors import (
    ConfigValidationError,
    PayloadParseError,
    TypeValidationError,
)
from return_dispatch.models.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_STARTING_DELAY_MS,
    DEFAULT_TIME_MULTIPLE,
    ActionConfig,
    DispatchMethod,
)

log = logging.getLogger(__name__)

WORKFLOW_ID_PATTERN = re.compile(r"\d+")

TRUE_VALUES = frozenset({"true", "True", "TRUE"})
FALSE_VALUES = frozenset({"false", "False", "FALSE"})

# JSON type names as a workflow author would read them
JSON_TYPE_NAMES: Mapping[type, str] = {
    str: "string",
    bool: "boolean",
    int: "number",
    float: "number",
    dict: "object",
    list: "array",
    type(None): "null",
}


def resolve_config(raw: Mapping[str, str]) -> ActionConfig:
    """Validate raw action inputs and build the action configuration.

    Args:
        raw: Input values keyed by action input name (e.g. "dispatch-method");
             missing keys are treated as empty

    Returns:
        Validated, immutable configuration

    Raises:
        ConfigValidationError: If an input is missing, forbidden or malformed

    """

    def get(name: str) -> str:
        return (raw.get(name) or "").strip()

    dispatch_method = parse_dispatch_method(get("dispatch-method"))
    owner = require(get("owner"), "owner")
    repo = require(get("repo"), "repo")
    token = require(get("token"), "token")
    ref = parse_ref(get("ref"), dispatch_method)
    event_type = parse_event_type(get("event-type"), dispatch_method)
    workflow = parse_workflow(get("workflow"), dispatch_method)
    workflow_inputs = parse_workflow_inputs(get("workflow-inputs"), dispatch_method)
    discover = parse_boolean(get("discover"), "discover")
    starting_delay_ms = parse_number(
        get("starting-delay-ms"), "starting-delay-ms", DEFAULT_STARTING_DELAY_MS
    )
    max_attempts = int(
        parse_number(get("max-attempts"), "max-attempts", DEFAULT_MAX_ATTEMPTS)
    )
    time_multiple = parse_number(
        get("time-multiple"), "time-multiple", DEFAULT_TIME_MULTIPLE
    )

    extra: dict[str, Any] = {}
    if api_url := get("api-url"):
        extra["api_base_url"] = api_url

    return ActionConfig(
        dispatch_method=dispatch_method,
        owner=owner,
        repo=repo,
        token=SecretStr(token),
        ref=ref,
        workflow=workflow,
        event_type=event_type,
        workflow_inputs=workflow_inputs,
        discover=discover,
        starting_delay_ms=starting_delay_ms,
        max_attempts=max_attempts or DEFAULT_MAX_ATTEMPTS,
        time_multiple=time_multiple,
        **extra,
    )


def require(value: str, field: str) -> str:
    """Return the value or fail if it is empty."""
    if not value:
        raise ConfigValidationError(field, "a value is required")
    return value


def parse_dispatch_method(value: str) -> DispatchMethod:
    """Parse the dispatch method input."""
    try:
        return DispatchMethod(value)
    except ValueError:
        allowed = ", ".join(method.value for method in DispatchMethod)
        raise ConfigValidationError(
            "dispatch-method",
            f"allowed values: [{allowed}], current value: {value!r}",
        ) from None


def parse_ref(value: str, dispatch_method: DispatchMethod) -> str | None:
    """Parse the git reference input."""
    if dispatch_method == DispatchMethod.REPOSITORY_DISPATCH and value:
        raise ConfigValidationError(
            "ref",
            "the repository_dispatch method only dispatches workflows from the "
            "default branch, so 'ref' is not supported",
        )
    if dispatch_method == DispatchMethod.WORKFLOW_DISPATCH and not value:
        raise ConfigValidationError(
            "ref",
            "a git reference such as 'main' or 'refs/heads/main' is required "
            "for the workflow_dispatch method",
        )
    return value or None


def parse_event_type(value: str, dispatch_method: DispatchMethod) -> str | None:
    """Parse the event type input."""
    if dispatch_method == DispatchMethod.REPOSITORY_DISPATCH and not value:
        raise ConfigValidationError(
            "event-type", "an event type is required for the repository_dispatch method"
        )
    if dispatch_method == DispatchMethod.WORKFLOW_DISPATCH and value:
        raise ConfigValidationError(
            "event-type", "not supported for the workflow_dispatch method"
        )
    return value or None


def parse_workflow(value: str, dispatch_method: DispatchMethod) -> int | str | None:
    """Parse the workflow input into a numeric ID or a file name.

    Only a value made up entirely of digits is a workflow ID, so a file name
    such as "1-release.yaml" is kept as a file name.
    """
    if dispatch_method == DispatchMethod.WORKFLOW_DISPATCH and not value:
        raise ConfigValidationError(
            "workflow",
            "a workflow file name or ID is required for the workflow_dispatch method",
        )
    if dispatch_method == DispatchMethod.REPOSITORY_DISPATCH:
        if value:
            raise ConfigValidationError(
                "workflow", "not supported for the repository_dispatch method"
            )
        return None

    if WORKFLOW_ID_PATTERN.fullmatch(value):
        return int(value)
    return value


def parse_workflow_inputs(
    value: str, dispatch_method: DispatchMethod
) -> Mapping[str, Any]:
    """Parse the JSON workflow inputs.

    Values of any JSON type are passed through for repository_dispatch, while
    workflow_dispatch only accepts strings.
    """
    if not value:
        return {}

    try:
        inputs = json.loads(value)
    except json.JSONDecodeError as error:
        raise PayloadParseError(f"not valid JSON: {error}") from error

    if not isinstance(inputs, dict):
        raise PayloadParseError(
            f"expected a JSON object but got {json_type_name(inputs)}"
        )

    if dispatch_method == DispatchMethod.WORKFLOW_DISPATCH:
        for key, item in inputs.items():
            if not isinstance(item, str):
                raise TypeValidationError(key, json_type_name(item), "string")

    return inputs


def parse_boolean(value: str, field: str) -> bool:
    """Parse a boolean input using the GitHub Actions input grammar."""
    if not value or value in FALSE_VALUES:
        return False
    if value in TRUE_VALUES:
        return True
    raise ConfigValidationError(
        field, f"expected one of true/True/TRUE/false/False/FALSE, got {value!r}"
    )


def parse_number(value: str, field: str, default: float) -> float:
    """Parse a backoff tuning input, falling back to the default.

    These values only tune retry cadence, so bad input never fails.
    """
    try:
        number = float(value)
    except ValueError:
        number = None

    if number is None or not number > 0 or number == float("inf"):
        log.debug("Using default %s=%s (input: %r)", field, default, value)
        return default
    return number


def json_type_name(value: Any) -> str:
    """Return the JSON type name of a decoded JSON value."""
    return JSON_TYPE_NAMES.get(type(value), type(value).__name__)
