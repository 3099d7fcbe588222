from __future__ import annotations

import time
from typing import Callable, Optional


class Delay:
    """Blocking millisecond delay used for rate limiting and render settling.

    Injected everywhere a sleep is needed so tests can pass ``NO_DELAY``
    without changing control flow.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    def __call__(self, ms: Optional[float]) -> None:
        if ms and ms > 0:
            self._sleep(ms / 1000.0)


NO_DELAY = Delay(sleep=lambda _s: None)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return max(0, int(round((time.perf_counter() - started) * 1000)))
