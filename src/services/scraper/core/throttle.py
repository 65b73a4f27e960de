"""
Throttle that spaces out the start of consecutive scrape operations.

Example:
    >>> throttle = Throttle(min_ms=1200, max_ms=2500)
    >>> await throttle.wait_turn()  # returns immediately the first time
    >>> await throttle.wait_turn()  # waits 1.2-2.5s after the previous start
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Throttle:
    """
    Single-slot gate with a randomized minimum spacing between operation starts.

    The last start time is the only shared state. It is read, waited on and
    rewritten while holding a lock, so concurrent callers are released one
    after the other in arrival order.
    """

    def __init__(
        self,
        min_ms: int = 1200,
        max_ms: int = 2500,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the throttle.

        Args:
            min_ms: Lower bound of the spacing in milliseconds
            max_ms: Upper bound of the spacing in milliseconds (inclusive)
            clock: Monotonic clock returning seconds
            sleep: Coroutine used to suspend the caller
            rng: Random source, mainly for tests
        """
        if min_ms < 0 or max_ms < min_ms:
            raise ValueError(f"Invalid throttle bounds: min_ms={min_ms}, max_ms={max_ms}")
        self.min_ms = min_ms
        self.max_ms = max_ms
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self.last_started_at: Optional[float] = None

    def _pick_interval(self) -> float:
        """Random spacing in seconds, drawn from [min_ms, max_ms] in whole milliseconds."""
        return self._rng.randint(self.min_ms, self.max_ms) / 1000.0

    async def wait_turn(self) -> float:
        """
        Wait until the spacing since the last recorded start has elapsed.

        Returns:
            Seconds actually spent waiting
        """
        async with self._lock:
            interval = self._pick_interval()
            waited = 0.0
            if self.last_started_at is not None:
                elapsed = self._clock() - self.last_started_at
                if elapsed < interval:
                    waited = interval - elapsed
                    logger.debug(f"Throttle: waiting {waited:.3f}s before next task")
                    await self._sleep(waited)
            self.last_started_at = self._clock()
            return waited

    def reset(self) -> None:
        """Forget the last start so the next caller passes immediately."""
        self.last_started_at = None
