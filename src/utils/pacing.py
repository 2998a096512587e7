"""
Fixed and randomized delays between browser actions.

All pacing goes through a Pacer so tests can swap the sleep function
for one that returns immediately.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional

from src.core.logging import get_logger

logger = get_logger(__name__)


class Pacer:
    """Human-pace delays."""

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def sleep_ms(self, ms: int) -> None:
        """Fixed delay in milliseconds."""
        if ms > 0:
            await self._sleep(ms / 1000.0)

    async def human_delay(self, min_ms: int, max_ms: int) -> int:
        """
        Random delay between min_ms and max_ms inclusive.

        Returns:
            The delay actually used, in milliseconds
        """
        if max_ms < min_ms:
            min_ms, max_ms = max_ms, min_ms
        ms = self._rng.randint(min_ms, max_ms)
        logger.debug(f"[pace] sleeping {ms}ms")
        await self.sleep_ms(ms)
        return ms

    @property
    def sleep(self) -> Callable[[float], Awaitable[None]]:
        """Underlying sleep coroutine, in seconds."""
        return self._sleep
