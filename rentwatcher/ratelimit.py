"""Global fetch throttling."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Admit one outbound fetch at a time, spaced by ``interval_s`` seconds."""

    def __init__(
        self,
        interval_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_start: Optional[float] = None

    def acquire(self) -> None:
        """Block until the next fetch may begin, then record its start."""
        with self._lock:
            if self._last_start is not None:
                since_last = self._clock() - self._last_start
                wait_for = self.interval_s - since_last
                if wait_for > 0:
                    logger.debug("Throttling next fetch for %.2fs", wait_for)
                    self._sleep(wait_for)
            self._last_start = self._clock()
