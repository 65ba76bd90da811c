"""Domain Guardrails - Retry with Bounded Exponential Backoff.

This module provides the retry policy wrapped around persistence calls. A
failed attempt is retried only when it is classified transient (network
fault, 5xx, 429); any other failure surfaces immediately. The delay before
attempt *n + 1* is ``min(base_delay * backoff_multiplier ** (n - 1), max_delay)``.

The policy is generic: it knows nothing about record kinds or validation and
owns no timeout. Callers bind the whole sequence with ``asyncio.wait_for``.

Architecture:
    - Pure domain logic with no infrastructure dependencies
    - Failures are reported through RetryResult, never raised
    - Cancellation propagates (``asyncio.CancelledError`` is not caught)
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from src.domain.ports import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryPrompt = Callable[[BaseException, int, int], Awaitable[bool]]


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def is_transient(error: BaseException) -> bool:
    """Classify a failure as retry-eligible.

    Transient: network-layer faults (NetworkError, ConnectionError,
    TimeoutError), any 5xx status and 429. Everything else is permanent.
    """
    if isinstance(error, (NetworkError, ConnectionError, TimeoutError)):
        return True
    status = _status_of(error)
    if status is None:
        return False
    return 500 <= status < 600 or status == 429


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Total attempts including the first (>= 1)
        base_delay: Delay in seconds before the second attempt
        max_delay: Upper bound on any single delay, in seconds
        backoff_multiplier: Growth factor between consecutive delays
        retry_condition: Predicate deciding whether a failure is retried
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    retry_condition: Callable[[BaseException], bool] = field(default=is_transient, compare=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}")

    def with_overrides(self, **changes: Any) -> "RetryPolicy":
        return replace(self, **changes)


RETRY_PRESETS: dict[str, RetryPolicy] = {
    "network": RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=5.0, backoff_multiplier=2.0),
    "server": RetryPolicy(max_attempts=5, base_delay=2.0, max_delay=15.0, backoff_multiplier=2.0),
    "critical": RetryPolicy(max_attempts=10, base_delay=1.0, max_delay=30.0, backoff_multiplier=1.5),
}


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Outcome of a retried operation.

    Attributes:
        success: True if some attempt succeeded
        value: Return value of the successful attempt
        error: Last failure when ``success`` is False
        attempts: Number of attempts actually made
        finished_at: UTC time the sequence ended
    """
    success: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def calculate_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay in seconds after failed ``attempt`` (1-based)."""
    delay = policy.base_delay * policy.backoff_multiplier ** (attempt - 1)
    return min(delay, policy.max_delay)


async def _run(
    operation: Operation,
    policy: RetryPolicy,
    on_retry_prompt: Optional[RetryPrompt] = None,
) -> RetryResult:
    last_error: Optional[BaseException] = None
    attempts = 0

    for attempt in range(1, policy.max_attempts + 1):
        attempts = attempt
        try:
            value = await operation()
        except Exception as e:
            last_error = e
        else:
            if attempt > 1:
                logger.info(f"Operation succeeded on attempt {attempt}/{policy.max_attempts}")
            return RetryResult(success=True, value=value, attempts=attempt)

        if attempt == policy.max_attempts:
            logger.error(
                f"Operation failed after {attempt} attempts: {type(last_error).__name__}: {last_error}"
            )
            break
        if not policy.retry_condition(last_error):
            logger.warning(f"Not retrying permanent failure: {type(last_error).__name__}: {last_error}")
            break
        if on_retry_prompt is not None and not await on_retry_prompt(last_error, attempt, policy.max_attempts):
            logger.info(f"Retry declined after attempt {attempt}/{policy.max_attempts}")
            break

        delay = calculate_delay(attempt, policy)
        logger.warning(
            f"Attempt {attempt}/{policy.max_attempts} failed ({type(last_error).__name__}: {last_error}); "
            f"retrying in {delay:.2f}s"
        )
        await asyncio.sleep(delay)

    return RetryResult(success=False, error=last_error, attempts=attempts)


async def retry(operation: Operation, policy: Optional[RetryPolicy] = None) -> RetryResult:
    """Await ``operation`` until success, a permanent failure or exhaustion.

    Parameters:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        policy: Retry configuration (defaults to ``RetryPolicy()``)

    Returns:
        RetryResult: never raises for failures of the operation itself

    Example Usage:
        ```python
        result = await asyncio.wait_for(
            retry(lambda: storage.save(record), RETRY_PRESETS["network"]),
            timeout=30,
        )
        if not result.success:
            show(get_retry_error_message(result.error, result.attempts, 3))
        ```
    """
    return await _run(operation, policy or RetryPolicy())


async def retry_with_confirmation(
    operation: Operation,
    policy: Optional[RetryPolicy],
    on_retry_prompt: RetryPrompt,
) -> RetryResult:
    """Like ``retry``, but asks ``on_retry_prompt(error, attempt, max_attempts)`` before each retry.

    A False answer stops the sequence with the last failure.
    """
    return await _run(operation, policy or RetryPolicy(), on_retry_prompt)


def get_retry_error_message(error: BaseException, attempt: int, max_attempts: int) -> str:
    """Human-readable message for a failed attempt."""
    if max_attempts > 1 and attempt >= max_attempts:
        return f"Operation failed after {max_attempts} attempts. Please try again later."

    status = _status_of(error)
    if status == 429:
        return "Too many requests. Please wait a moment and try again."
    if status is not None and status >= 500:
        return "Server error occurred. Please try again."
    if isinstance(error, (NetworkError, ConnectionError, TimeoutError)):
        return "Network error. Please check your connection and try again."

    return f"Operation failed. Attempt {attempt} of {max_attempts}."
