"""
Retry utilities for the harvester.

Two policies live here:
- retry_async_with_backoff: exception-driven retries with exponential backoff
  (used around navigation).
- perform_with_retries: the "trigger an action, then wait for readiness" loop
  used when a result view has to be re-requested until it settles.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, TypeVar, Optional
from dataclasses import dataclass

from src.core.exceptions import SessionFatalError
from src.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0

    def __post_init__(self):
        """Validate configuration."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.exponential_base <= 1:
            raise ValueError("exponential_base must be > 1")

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based attempt."""
        return min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)


def retry_async_with_backoff(
    func: Callable[..., Awaitable[T]],
    config: Optional[RetryConfig] = None,
    retry_on: tuple = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None
):
    """
    Wrap a coroutine function with exponential-backoff retries.

    Args:
        func: Async function to retry
        config: Retry configuration
        retry_on: Tuple of exception types to retry on
        on_retry: Optional callback called on each retry (attempt, exception)

    Returns:
        Async wrapper function

    Example:
        >>> goto = retry_async_with_backoff(page.goto, RetryConfig(max_retries=2))
        >>> # await goto("https://bot.targethunter.ru/groups")
    """
    if config is None:
        config = RetryConfig()

    async def wrapper(*args, **kwargs):
        for attempt in range(config.max_retries + 1):
            try:
                return await func(*args, **kwargs)
            except retry_on as e:
                if attempt == config.max_retries:
                    logger.error(f"All {config.max_retries} retries exhausted: {e}")
                    raise

                delay = config.delay_for(attempt)
                logger.warning(
                    f"Retry {attempt + 1}/{config.max_retries} "
                    f"after {delay:.2f}s: {e}"
                )

                if on_retry:
                    on_retry(attempt + 1, e)

                await asyncio.sleep(delay)

        raise RuntimeError("Retry logic error")

    return wrapper


class AttemptOutcome(str, Enum):
    """Outcome of one trigger-then-wait attempt."""
    SUCCESS = "success"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class RetryAttempt:
    """One attempt of perform_with_retries."""

    attempt_number: int
    max_attempts: int
    outcome: AttemptOutcome


async def perform_with_retries(
    trigger: Callable[[], Awaitable[None]],
    readiness: Callable[[], Awaitable[bool]],
    max_attempts: int,
    post_ready_delay: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "",
    on_attempt: Optional[Callable[[RetryAttempt], None]] = None,
) -> bool:
    """
    Trigger an action and wait for readiness, re-triggering on failure.

    A trigger or readiness check that raises counts as a failed attempt,
    except SessionFatalError which propagates.

    Args:
        trigger: Coroutine function performing the action (e.g. click "show")
        readiness: Coroutine function returning True once the view settled
        max_attempts: Maximum number of trigger/readiness rounds
        post_ready_delay: Seconds to sleep after readiness succeeds
        sleep: Sleep coroutine (injectable for tests)
        label: Target label used in log lines
        on_attempt: Optional callback receiving every RetryAttempt

    Returns:
        True on the first successful attempt, False after max_attempts failures
    """
    if max_attempts <= 0:
        raise ValueError("max_attempts must be positive")

    prefix = f"[{label}] " if label else ""

    for attempt in range(1, max_attempts + 1):
        ready = False
        try:
            await trigger()
            ready = bool(await readiness())
        except SessionFatalError:
            raise
        except Exception as e:
            logger.warning(f"{prefix}attempt {attempt}/{max_attempts} raised: {e}")

        outcome = AttemptOutcome.SUCCESS if ready else AttemptOutcome.TIMED_OUT
        if on_attempt:
            on_attempt(RetryAttempt(attempt, max_attempts, outcome))

        if ready:
            if post_ready_delay > 0:
                await sleep(post_ready_delay)
            logger.debug(f"{prefix}ready on attempt {attempt}/{max_attempts}")
            return True

        logger.warning(f"{prefix}not ready after attempt {attempt}/{max_attempts}")

    logger.error(f"{prefix}gave up after {max_attempts} attempts")
    return False
