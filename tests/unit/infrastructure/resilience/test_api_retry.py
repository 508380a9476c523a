from unittest.mock import AsyncMock

import pytest

from linearkit.core.exceptions import ClientError, EmptyResultError, NotFoundError
from linearkit.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    RetryScheduled,
)
from linearkit.domain.models.common import RetryPolicy
from linearkit.infrastructure.resilience.api_retry import ApiRetryService


class HttpError(Exception):
    """Stand-in for an HTTP client exception carrying a status code."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@pytest.mark.asyncio
async def test_returns_first_success_without_sleeping(retry_service: ApiRetryService, clock):
    operation = AsyncMock(return_value="ok")

    result = await retry_service.execute_with_retry(operation, endpoint_name="teams")

    assert result == "ok"
    operation.assert_awaited_once()
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success(retry_service: ApiRetryService, clock):
    operation = AsyncMock(side_effect=[RuntimeError("socket hang up"), RuntimeError("503 Service Unavailable"), "ok"])

    result = await retry_service.execute_with_retry(operation, endpoint_name="teams")

    assert result == "ok"
    assert operation.await_count == 3
    assert clock.sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_raises_last_error_after_max_retries(retry_service: ApiRetryService, clock):
    errors = [RuntimeError(f"timeout {n}") for n in range(4)]
    operation = AsyncMock(side_effect=errors)

    with pytest.raises(RuntimeError) as exc_info:
        await retry_service.execute_with_retry(operation, endpoint_name="teams")

    assert exc_info.value is errors[-1]
    assert operation.await_count == 4
    assert clock.sleeps == [1.0, 2.0, 4.0]


@pytest.mark.parametrize(
    "error",
    [
        ClientError("Invalid input"),
        NotFoundError("Issue not found"),
        HttpError("Not Found", status_code=404),
        HttpError("Bad Request", status_code=400),
        RuntimeError("Request failed with status code 400"),
        RuntimeError("GraphQL error: 404 entity not found"),
        EmptyResultError("Linear returned no issue"),
    ],
)
@pytest.mark.asyncio
async def test_non_retryable_errors_are_attempted_once(retry_service: ApiRetryService, clock, error):
    operation = AsyncMock(side_effect=error)

    with pytest.raises(type(error)):
        await retry_service.execute_with_retry(operation, endpoint_name="issue")

    operation.assert_awaited_once()
    assert clock.sleeps == []


@pytest.mark.parametrize("status_code", [401, 429, 500, 502])
@pytest.mark.asyncio
async def test_other_status_codes_are_retried(retry_service: ApiRetryService, status_code):
    operation = AsyncMock(side_effect=[HttpError("failed", status_code=status_code), "ok"])

    assert await retry_service.execute_with_retry(operation) == "ok"
    assert operation.await_count == 2


@pytest.mark.parametrize(
    "message",
    ["socket timeout while loading ENG-404", "ENG-400: connection reset"],
)
@pytest.mark.asyncio
async def test_issue_keys_in_message_are_not_client_errors(retry_service: ApiRetryService, clock, message):
    operation = AsyncMock(side_effect=[RuntimeError(message), "ok"])

    assert await retry_service.execute_with_retry(operation, endpoint_name="issue") == "ok"
    assert operation.await_count == 2
    assert clock.sleeps == [1.0]


@pytest.mark.asyncio
async def test_status_attribute_wins_over_message(retry_service: ApiRetryService):
    operation = AsyncMock(side_effect=[HttpError("upstream said 404 earlier", status_code=503), "ok"])

    assert await retry_service.execute_with_retry(operation) == "ok"


@pytest.mark.asyncio
async def test_backoff_delay_is_capped(clock):
    service = ApiRetryService(policy=RetryPolicy(max_retries=5), sleep=clock.sleep)
    operation = AsyncMock(side_effect=RuntimeError("down"))

    with pytest.raises(RuntimeError):
        await service.execute_with_retry(operation)

    assert operation.await_count == 6
    assert clock.sleeps == [1.0, 2.0, 4.0, 8.0, 10.0]


@pytest.mark.asyncio
async def test_zero_retries_attempts_once(clock):
    service = ApiRetryService(policy=RetryPolicy(max_retries=0), sleep=clock.sleep)
    operation = AsyncMock(side_effect=RuntimeError("down"))

    with pytest.raises(RuntimeError):
        await service.execute_with_retry(operation)

    operation.assert_awaited_once()


@pytest.mark.asyncio
async def test_publishes_events_for_each_attempt(retry_service: ApiRetryService, events):
    operation = AsyncMock(side_effect=[RuntimeError("blip"), "ok"])

    await retry_service.execute_with_retry(operation, endpoint_name="teams")

    assert [type(e) for e in events] == [ApiCallInitiated, RetryScheduled, ApiCallInitiated, ApiCallSucceeded]
    assert events[1].delay_seconds == 1.0
    assert events[3].attempt_number == 2


@pytest.mark.asyncio
async def test_publishes_failure_with_context(retry_service: ApiRetryService, events):
    operation = AsyncMock(side_effect=NotFoundError("Issue ENG-1 not found"))

    with pytest.raises(NotFoundError):
        await retry_service.execute_with_retry(operation, endpoint_name="issue", context={"issue_id": "ENG-1"})

    failed = events[-1]
    assert isinstance(failed, ApiCallFailed)
    assert failed.error_type == "NotFoundError"
    assert failed.attempts == 1
    assert failed.context == {"issue_id": "ENG-1"}
