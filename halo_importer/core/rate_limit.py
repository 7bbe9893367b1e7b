"""Fixed-interval throttle between successive outbound submissions."""

from __future__ import annotations

import time
from typing import Callable


class RequestThrottle:
    """Keeps at least `min_interval` seconds between the starts of successive requests.

    Not a retry policy: it only spaces requests out.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = max(min_interval, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self.total_waited = 0.0

    def wait(self) -> float:
        now = self._clock()
        delay = 0.0
        if self._last is not None and self.min_interval > 0:
            delay = max(self._last + self.min_interval - now, 0.0)
        if delay > 0:
            self._sleep(delay)
            self.total_waited += delay
            now = self._clock()
        self._last = now
        return delay
