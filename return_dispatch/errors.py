"""Error taxonomy for dispatching and discovering workflow runs."""


class ReturnDispatchError(Exception):
    """Base class for all errors raised by return-dispatch."""


class ConfigValidationError(ReturnDispatchError):
    """Raised when an action input is missing, forbidden or malformed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid input '{field}': {message}")
        self.field = field


class PayloadParseError(ConfigValidationError):
    """Raised when workflow inputs are not a JSON object."""

    def __init__(self, message: str) -> None:
        super().__init__("workflow-inputs", message)


class TypeValidationError(ConfigValidationError):
    """Raised when a workflow_dispatch input value is not a string."""

    def __init__(self, key: str, actual_type: str, expected_type: str) -> None:
        super().__init__(
            "workflow-inputs",
            "for the workflow_dispatch method, the only supported value type "
            f"is {expected_type} (key={key}, current type={actual_type}, "
            f"expected type={expected_type})",
        )
        self.key = key
        self.actual_type = actual_type
        self.expected_type = expected_type


class DispatchError(ReturnDispatchError):
    """Raised when a dispatch call fails or returns an unexpected status.

    A status of 0 means no response was received.
    """

    def __init__(self, operation: str, status: int, body: str = "") -> None:
        super().__init__(f"{operation}: Failed to dispatch workflow: {status} {body}")
        self.operation = operation
        self.status = status
        self.body = body


class HttpError(ReturnDispatchError):
    """Raised when a read-only API call fails or returns an unexpected status.

    A status of 0 means no response was received.
    """

    def __init__(self, operation: str, status: int, body: str = "") -> None:
        super().__init__(f"{operation}: expected 200 but received {status} {body}")
        self.operation = operation
        self.status = status
        self.body = body


class NotFoundError(ReturnDispatchError):
    """Raised when a workflow or workflow run could not be found."""


class RetryExhaustedError(ReturnDispatchError):
    """Raised when a retried operation did not succeed within its attempts."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        reason = str(last_error) if last_error is not None else "no usable result"
        super().__init__(f"Gave up after {attempts} attempt(s): {reason}")
        self.attempts = attempts
        self.last_error = last_error
