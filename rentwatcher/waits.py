"""Bounded polling waits for asynchronously rendered content."""

from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from .errors import WaitTimeout

T = TypeVar("T")


def wait_for(
    probe: Callable[[], Optional[T]],
    timeout_s: float,
    interval_s: float = 0.25,
    *,
    description: str = "condition",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Poll ``probe`` until it returns a truthy value and return that value.

    The probe is always evaluated at least once, so content that is already
    present never incurs a sleep. Raises ``WaitTimeout`` once ``timeout_s``
    has elapsed without success.
    """
    deadline = clock() + timeout_s
    while True:
        result = probe()
        if result:
            return result
        if clock() >= deadline:
            raise WaitTimeout(f"Timed out after {timeout_s:.1f}s waiting for {description}")
        sleep(interval_s)
