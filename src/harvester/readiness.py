"""
Readiness polling for result views that render without a completion event.

The console fills its result list asynchronously and never signals that it
is done. ``await_stable`` samples a numeric probe (e.g. how many identifiers
are currently rendered) and succeeds once the value is acceptable and has not
changed for a stability window.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from src.core.config import Config
from src.core.logging import get_logger

logger = get_logger(__name__)

Probe = Callable[[], Awaitable[int]]
Shortcut = Callable[[], Awaitable[bool]]

DEFAULT_POLL_INTERVAL = 0.5


@dataclass
class ReadinessSettings:
    """Readiness timing for one kind of result view (seconds)."""

    max_wait: float = 20.0
    min_stable_window: float = 1.5
    post_ready_delay: float = 1.0
    min_acceptable_value: int = 1
    use_shortcut: bool = True
    interval: float = DEFAULT_POLL_INTERVAL

    def __post_init__(self):
        if self.max_wait < 0:
            raise ValueError("max_wait must be non-negative")
        if self.min_stable_window < 0:
            raise ValueError("min_stable_window must be non-negative")
        if self.interval <= 0:
            raise ValueError("interval must be positive")

    @classmethod
    def from_config(cls, config: Config, bots: bool = False) -> "ReadinessSettings":
        """
        Build settings from configuration.

        The bots-and-steps view uses its own, longer stability window and
        relies on the count alone (no structural shortcut).
        """
        if bots:
            return cls(
                max_wait=config.bots_ready_timeout_ms / 1000.0,
                min_stable_window=config.bots_stable_ms / 1000.0,
                post_ready_delay=config.bots_post_ready_delay_ms / 1000.0,
                use_shortcut=False,
            )
        return cls(
            max_wait=config.ready_timeout_ms / 1000.0,
            min_stable_window=config.ready_stable_ms / 1000.0,
            post_ready_delay=config.post_ready_delay_ms / 1000.0,
        )


async def await_stable(
    probe: Probe,
    max_wait: float,
    min_stable_window: float,
    min_acceptable_value: int = 1,
    shortcut: Optional[Shortcut] = None,
    interval: float = DEFAULT_POLL_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    observer: Optional[Callable[[int, float], None]] = None,
) -> bool:
    """
    Poll ``probe`` until its value is acceptable and stable, or time runs out.

    Each sample is taken to cover the interval that follows it, so a value
    seen on three consecutive samples with ``interval=0.5`` has been held for
    1.5s. Any change of value (up or down) restarts the stability clock.
    A probe or shortcut that raises is treated as a skipped sample.

    Args:
        probe: Coroutine function returning the current value
        max_wait: Seconds before giving up
        min_stable_window: Seconds the value must be held
        min_acceptable_value: Lowest value that can count as ready
        shortcut: Optional coroutine function; True means ready immediately
        interval: Seconds between samples
        clock: Monotonic clock (injectable for tests)
        sleep: Sleep coroutine (injectable for tests)
        observer: Optional callback receiving (value, timestamp) per sample

    Returns:
        True once ready, False on timeout
    """
    start = clock()
    last_value: Optional[int] = None
    last_change = start

    while True:
        now = clock()

        if shortcut is not None:
            try:
                if await shortcut():
                    logger.debug("[ready] structural shortcut satisfied")
                    return True
            except Exception as e:
                logger.debug(f"[ready] shortcut failed, skipping: {e}")

        try:
            value = int(await probe())
        except Exception as e:
            logger.debug(f"[ready] probe failed, skipping sample: {e}")
            value = None

        if value is not None:
            if value != last_value:
                last_value = value
                last_change = now
            if observer:
                observer(value, now)

            held = now - last_change + interval
            if value >= min_acceptable_value and held >= min_stable_window - 1e-9:
                logger.debug(f"[ready] value {value} stable for {held:.1f}s")
                return True

        if clock() - start >= max_wait:
            logger.debug(f"[ready] timed out after {max_wait:.1f}s (last value {last_value})")
            return False

        await sleep(interval)
