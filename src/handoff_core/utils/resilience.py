"""Resilience utilities for calls to the ticketing service.

This module provides the backoff policy, the retryable/fatal error classifier
and the retry executor used around every individual ticketing API call.

Retry policy:
- Attempt 1 is immediate; up to 4 attempts in total
- Delay before attempt n+1 is 100ms * 2^(n-1), capped at 10s, with jitter
- Only transient failures are retried (timeouts, connection failures,
  429/502/503/504); everything else fails fast
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from handoff_core.errors import SummarizerError, TicketingError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_DELAY_SECONDS = 0.1
MAX_DELAY_SECONDS = 10.0
DEFAULT_MAX_ATTEMPTS = 4

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


def calculate_backoff(attempt: int) -> float:
    """Delay in seconds before the retry that follows failed attempt ``attempt``.

    Args:
        attempt: Number of the attempt that just failed (1-based)

    Returns:
        Exponential delay capped at 10s, with a uniform offset in
        [-cap/8, +cap/8). Never negative.

    Example:
        >>> 0.075 <= calculate_backoff(1) <= 0.125
        True
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    exponential = BASE_DELAY_SECONDS * (2 ** (attempt - 1))
    capped = min(exponential, MAX_DELAY_SECONDS)

    jitter_range = capped / 4
    jitter = random.uniform(0, jitter_range) - jitter_range / 2
    return max(0.0, capped + jitter)


def is_retryable(error: BaseException) -> bool:
    """Classify an error as retryable (transient) or fatal.

    Args:
        error: Exception raised by an operation

    Returns:
        True when repeating the same call could plausibly succeed
    """
    if isinstance(error, TransportError):
        return error.is_timeout or error.is_connect

    if isinstance(error, TicketingError):
        return error.status_code in RETRYABLE_STATUS_CODES

    if isinstance(error, SummarizerError):
        return error.transient

    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500

    return False


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log a failed attempt before sleeping."""
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    name = getattr(retry_state.fn, "__name__", "operation")
    logger.warning(
        f"[Resilience] Attempt {retry_state.attempt_number} for {name} failed: "
        f"{exception}. Retrying in {int(delay * 1000)}ms"
    )


def _wait_backoff(retry_state: RetryCallState) -> float:
    return calculate_backoff(retry_state.attempt_number)


class RetryExecutor:
    """Bounded retry around a single idempotent async operation.

    Usage:
        executor = RetryExecutor()
        ticket = await executor.execute(lambda: client._fetch_once("OPS-1"))

    Args:
        max_attempts: Total attempts including the first (default: 4)
        sleep: Awaitable sleep function, replaceable in tests
        classifier: Predicate deciding whether an error is retried
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        classifier: Callable[[BaseException], bool] = is_retryable,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self._sleep = sleep or asyncio.sleep
        self._classifier = classifier

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        description: Optional[str] = None,
    ) -> T:
        """Run ``operation`` until it succeeds, fails fatally or runs out of attempts.

        Raises:
            The last exception raised by ``operation``
        """
        name = description or getattr(operation, "__name__", "operation")
        attempts = 0

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        attempt.__name__ = name

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=_wait_backoff,
            retry=retry_if_exception(self._classifier),
            before_sleep=_log_retry_attempt,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            return await retrying(attempt)
        except Exception as e:
            if attempts >= self.max_attempts and self._classifier(e):
                logger.error(f"[Resilience] {name} failed after {attempts} attempts: {e}")
            else:
                logger.warning(f"[Resilience] Non-retryable error in {name}, failing immediately: {e}")
            raise
