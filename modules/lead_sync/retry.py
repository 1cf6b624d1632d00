"""
Bounded retry with linear backoff for remote calls.

Every remote call site (lead push, lead fetch, contact list, contact update)
goes through with_retry() with its own RetryPolicy.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from .config import RetryPolicy
from .exceptions import is_transient
from .log import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


def _log_retry(label: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"{label} failed (attempt {retry_state.attempt_number}/{policy.max_retries + 1}): "
            f"{exc}. Retrying in {wait:g}s"
        )
    return before_sleep


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async remote operation with bounded retries.

    Transient failures are retried up to policy.max_retries times, waiting
    base_delay * attempt between tries. The last error is re-raised unchanged
    so callers see the same exceptions as an unretried call. Non-transient
    errors are raised on the first attempt.

    Args:
        operation: Zero-argument callable returning a coroutine
        policy: Retry limit and base delay for this call site
        label: Short description used in log events
        sleep: Awaitable sleep (injectable for tests)
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_incrementing(start=policy.base_delay, increment=policy.base_delay),
        retry=retry_if_exception(is_transient),
        before_sleep=_log_retry(label, policy),
        sleep=sleep,
        reraise=True,
    )

    attempts = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                return await operation()
    except Exception as e:
        if is_transient(e) and attempts > policy.max_retries:
            logger.error(f"{label} failed after {attempts} attempts: {e}")
        raise
