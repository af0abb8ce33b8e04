"""Bounded retry with exponential backoff for external calls."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..models.policy import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (ConnectionError, TimeoutError, asyncio.TimeoutError)


class RetryExhaustedError(Exception):
    """All attempts of an operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{operation} failed after {attempts} attempts: {last_error}")


async def call_with_retry(
    operation: str,
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
) -> T:
    """Run ``func`` with a per-attempt timeout, retrying transient failures.

    Args:
        operation: Name used in logs and errors
        func: Zero-argument coroutine factory
        policy: Attempts, backoff and timeout

    Raises:
        RetryExhaustedError: If every attempt failed with a transient error
    """
    policy = policy or RetryPolicy()
    last_error: Optional[BaseException] = None

    for attempt in range(policy.max_attempts):
        try:
            return await asyncio.wait_for(func(), timeout=policy.timeout)
        except TRANSIENT_ERRORS as e:
            last_error = e
            if attempt + 1 >= policy.max_attempts:
                break
            delay = min(policy.base_delay * (2 ** attempt), policy.max_delay)
            logger.warning(
                f"🔁 {operation} attempt {attempt + 1}/{policy.max_attempts} failed "
                f"({type(e).__name__}: {e}), retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    raise RetryExhaustedError(operation, policy.max_attempts, last_error)
