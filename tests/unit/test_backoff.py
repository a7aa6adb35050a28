"""Tests for the backoff executor."""

from unittest.mock import AsyncMock

import pytest

from return_dispatch.backoff import MAX_DELAY_SECONDS, BackoffPolicy, execute
from return_dispatch.errors import HttpError, NotFoundError, RetryExhaustedError

POLICY = BackoffPolicy(starting_delay_ms=100, max_attempts=4, time_multiple=3)


@pytest.fixture
def sleep() -> AsyncMock:
    """Record backoff delays without waiting."""
    return AsyncMock()


def test_delay_grows_exponentially() -> None:
    """Delay is starting_delay * time_multiple^(attempt - 1), in seconds."""
    assert [POLICY.delay_for(attempt) for attempt in (1, 2, 3)] == pytest.approx(
        [0.1, 0.3, 0.9]
    )


@pytest.mark.parametrize(
    "policy",
    [
        BackoffPolicy(starting_delay_ms=200, time_multiple=1e308),
        BackoffPolicy(starting_delay_ms=1e308, time_multiple=10),
        BackoffPolicy(starting_delay_ms=200, time_multiple=2, max_attempts=5000),
    ],
)
def test_delay_is_capped(policy: BackoffPolicy) -> None:
    """Delays that would overflow or exceed the cap are clamped."""
    assert policy.delay_for(policy.max_attempts) == MAX_DELAY_SECONDS


async def test_huge_multiple_does_not_break_retries(sleep: AsyncMock) -> None:
    """Retrying keeps going when the delay cannot be computed exactly."""
    policy = BackoffPolicy(starting_delay_ms=200, max_attempts=4, time_multiple=1e308)
    operation = AsyncMock(side_effect=[HttpError("op", 500)] * 3 + ["found"])

    result = await execute(operation, policy, retry_on=(HttpError,), sleep=sleep)

    assert result == "found"
    assert [call.args[0] for call in sleep.await_args_list] == [
        0.2,
        MAX_DELAY_SECONDS,
        MAX_DELAY_SECONDS,
    ]


async def test_returns_first_success_without_sleeping(sleep: AsyncMock) -> None:
    """A successful first attempt is returned immediately."""
    operation = AsyncMock(return_value=42)

    result = await execute(operation, POLICY, sleep=sleep)

    assert result == 42
    operation.assert_awaited_once()
    sleep.assert_not_called()


async def test_retries_retryable_errors(sleep: AsyncMock) -> None:
    """Retryable errors are retried with growing delays."""
    operation = AsyncMock(
        side_effect=[HttpError("op", 500), NotFoundError("missing"), "found"]
    )

    result = await execute(
        operation, POLICY, retry_on=(HttpError, NotFoundError), sleep=sleep
    )

    assert result == "found"
    assert operation.await_count == 3
    assert [call.args[0] for call in sleep.await_args_list] == pytest.approx(
        [0.1, 0.3]
    )


async def test_raises_retry_exhausted_after_max_attempts(sleep: AsyncMock) -> None:
    """Gives up after max_attempts and wraps the last error."""
    last_error = NotFoundError("still missing")
    operation = AsyncMock(
        side_effect=[NotFoundError(str(i)) for i in range(3)] + [last_error]
    )

    with pytest.raises(RetryExhaustedError) as exc:
        await execute(operation, POLICY, retry_on=(NotFoundError,), sleep=sleep)

    assert exc.value.attempts == 4
    assert exc.value.last_error is last_error
    assert exc.value.__cause__ is last_error
    assert operation.await_count == 4
    # No sleep after the final attempt
    assert sleep.await_count == 3


async def test_non_retryable_errors_propagate_immediately(sleep: AsyncMock) -> None:
    """Errors outside retry_on are raised unchanged on the first attempt."""
    operation = AsyncMock(side_effect=ValueError("boom"))

    with pytest.raises(ValueError, match="boom"):
        await execute(operation, POLICY, retry_on=(HttpError,), sleep=sleep)

    operation.assert_awaited_once()
    sleep.assert_not_called()


async def test_retries_rejected_results(sleep: AsyncMock) -> None:
    """Results rejected by retry_if_result are retried."""
    operation = AsyncMock(side_effect=[[], [], ["run"]])

    result = await execute(
        operation, POLICY, retry_if_result=lambda runs: not runs, sleep=sleep
    )

    assert result == ["run"]
    assert sleep.await_count == 2


async def test_rejected_results_exhaust_attempts(sleep: AsyncMock) -> None:
    """Only rejected results still end in RetryExhaustedError."""
    operation = AsyncMock(return_value=[])

    with pytest.raises(RetryExhaustedError, match="no usable result") as exc:
        await execute(
            operation, POLICY, retry_if_result=lambda runs: not runs, sleep=sleep
        )

    assert exc.value.last_error is None
    assert operation.await_count == 4


async def test_single_attempt_policy_never_sleeps(sleep: AsyncMock) -> None:
    """A policy with one attempt fails without waiting."""
    operation = AsyncMock(side_effect=HttpError("op", 502))

    with pytest.raises(RetryExhaustedError):
        await execute(
            operation,
            BackoffPolicy(max_attempts=1),
            retry_on=(HttpError,),
            sleep=sleep,
        )

    sleep.assert_not_called()
