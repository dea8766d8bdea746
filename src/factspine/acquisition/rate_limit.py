"""Fixed-delay rate limiting for outbound fetches.

Government portals are fragile and publish no quota; the collector simply
waits a configured minimum interval between consecutive requests made by one
controller instance. Not adaptive, no burst.

Example::

    limiter = FixedDelayRateLimiter(min_interval=1.0)
    for url in urls:
        limiter.wait()
        fetch(url)

Tags:
    factspine, acquisition, rate-limit, throttle
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class FixedDelayRateLimiter:
    """Enforce at least ``min_interval`` seconds between calls to :meth:`wait`.

    The first call never blocks. ``clock`` and ``sleep`` are injectable so
    tests can observe the delays without sleeping.

    Attributes:
        min_interval: Minimum seconds between consecutive requests
    """

    min_interval: float
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    _last_request: float | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    @classmethod
    def from_millis(cls, rate_limit_ms: int, **kwargs) -> FixedDelayRateLimiter:
        return cls(min_interval=rate_limit_ms / 1000.0, **kwargs)

    def get_wait_time(self) -> float:
        """Seconds the next :meth:`wait` would block (0 if none)."""
        if self._last_request is None or self.min_interval <= 0:
            return 0.0
        elapsed = self.clock() - self._last_request
        return max(0.0, self.min_interval - elapsed)

    def wait(self) -> float:
        """Block until the interval has passed, then mark a request.

        Returns:
            Seconds actually waited
        """
        with self._lock:
            delay = self.get_wait_time()
            if delay > 0:
                self.sleep(delay)
            self._last_request = self.clock()
            return delay


__all__ = ["FixedDelayRateLimiter"]
