"""Service for executing API calls with automatic retries.

Implements exponential backoff for handling transient errors like rate
limits (429) or temporary server issues (5xx). Client errors (400/404) and
empty results fail fast, since repeating the same request cannot succeed.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from linearkit.core.exceptions import is_retryable
from linearkit.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    EventHandler,
    RetryScheduled,
)
from linearkit.domain.models.common import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def log_event(event: DomainEvent) -> None:
    """Default event handler: events only show up in debug logs."""
    logger.debug(f"EVENT: {event}")


class ApiRetryService:
    """Handles API call execution with bounded exponential-backoff retries."""

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            policy: Retry bounds and backoff shape.
            sleep: Coroutine function used between attempts. Injected by tests.
            event_handler: Receives the domain events of every call.
        """
        self.policy = policy
        self._sleep = sleep
        self._dispatch = event_handler or log_event

        logger.info(
            f"ApiRetryService initialized: max_retries={policy.max_retries}, "
            f"initial_delay={policy.initial_delay}s, max_delay={policy.max_delay}s, "
            f"multiplier={policy.backoff_multiplier}"
        )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        endpoint_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> T:
        """Executes a zero-argument async operation with retries.

        Args:
            operation: The async callable (API call) to execute.
            endpoint_name: Name of the remote endpoint, for logging and events.
            context: Identifiers of the call, for logging and events.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The error of the last attempt, either because it was
                non-retryable or because all attempts were used up.
        """
        endpoint = endpoint_name or getattr(operation, "__name__", "operation")
        attempt = 0

        while True:
            self._dispatch(ApiCallInitiated(endpoint=endpoint, attempt_number=attempt + 1))
            start_time = time.perf_counter()
            try:
                result = await operation()
            except Exception as e:
                if not is_retryable(e):
                    logger.error(f"Non-retryable error calling {endpoint} on attempt {attempt + 1}: {e}")
                    self._dispatch(ApiCallFailed(
                        endpoint=endpoint, error_type=type(e).__name__, error_message=str(e),
                        attempts=attempt + 1, context=context,
                    ))
                    raise

                if attempt >= self.policy.max_retries:
                    logger.error(
                        f"Max retries ({self.policy.max_retries}) reached for {endpoint} {context or ''}. "
                        f"Last error: {e}"
                    )
                    self._dispatch(ApiCallFailed(
                        endpoint=endpoint, error_type=type(e).__name__, error_message=str(e),
                        attempts=attempt + 1, context=context,
                    ))
                    raise

                delay = self.policy.delay_for(attempt)
                logger.warning(
                    f"Retryable error calling {endpoint} on attempt {attempt + 1}/{self.policy.max_retries + 1}: "
                    f"{type(e).__name__}: {e}. Waiting {delay:.2f}s..."
                )
                self._dispatch(RetryScheduled(
                    endpoint=endpoint, attempt_number=attempt + 1, delay_seconds=delay, error_message=str(e),
                ))
                await self._sleep(delay)
                attempt += 1
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch(ApiCallSucceeded(endpoint=endpoint, latency_ms=latency_ms, attempt_number=attempt + 1))
            return result
