"""Bounded retries with exponential delay for read-only API calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from return_dispatch.errors import RetryExhaustedError

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

T = TypeVar("T")

# Upper bound of a single wait, the longest a workflow run may last
MAX_DELAY_SECONDS = 35 * 24 * 60 * 60


@dataclass(frozen=True, kw_only=True)
class BackoffPolicy:
    """Starting delay, attempt ceiling and growth factor for retries."""

    starting_delay_ms: float = 200
    max_attempts: int = 5
    time_multiple: float = 2

    def delay_for(self, attempt: int) -> float:
        """Return the delay in seconds to wait after the given failed attempt.

        Delays grow exponentially and are capped at MAX_DELAY_SECONDS.
        """
        try:
            delay = self.starting_delay_ms * self.time_multiple ** (attempt - 1) / 1000
        except OverflowError:
            return MAX_DELAY_SECONDS
        return min(delay, MAX_DELAY_SECONDS)


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: BackoffPolicy,
    *,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    retry_if_result: Callable[[T], bool] | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run an operation, retrying it with exponential backoff.

    Args:
        operation: Zero-argument coroutine function to invoke
        policy: Delay and attempt settings
        retry_on: Exception types that mark an attempt as retryable; any
            other exception propagates immediately
        retry_if_result: Predicate marking a returned value as "not yet
            available", e.g. an empty list of runs
        sleep: Coroutine used to wait between attempts

    Returns:
        The first accepted result of the operation

    Raises:
        RetryExhaustedError: If no attempt succeeded within max_attempts

    """
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await operation()
        except retry_on as error:
            last_error = error
            log.debug("Attempt %d/%d failed: %s", attempt, policy.max_attempts, error)
        else:
            if retry_if_result is None or not retry_if_result(result):
                return result
            last_error = None
            log.debug(
                "Attempt %d/%d returned no usable result", attempt, policy.max_attempts
            )

        if attempt < policy.max_attempts:
            await sleep(policy.delay_for(attempt))

    raise RetryExhaustedError(policy.max_attempts, last_error) from last_error
