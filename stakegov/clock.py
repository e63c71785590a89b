"""
Time sources.

Every accrual-sensitive or window-sensitive operation asks a clock for "now"
instead of calling `time.time()` itself. A clock is any zero-argument callable
returning integer seconds; the two below cover production and tests.
"""

import threading
import time

from .exceptions import ClockError
from .logger import get_logger

logger = get_logger(__name__)


class SystemClock:
    """Wall-clock seconds, clamped so the value never decreases."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now = int(time.time())
            if now < self._last:
                logger.warning(f"System clock stepped back {self._last - now}s, holding")
                now = self._last
            self._last = now
            return now

    def __repr__(self) -> str:
        return f"<SystemClock last={self._last}>"


class ManualClock:
    """
    Deterministic clock advanced explicitly by the caller.

    Used by tests and simulations; refuses to move backwards.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ClockError(f"Clock cannot start at negative time {start}")
        self._now = int(start)

    def __call__(self) -> int:
        return self._now

    @property
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by *seconds* and return the new time."""
        if seconds < 0:
            raise ClockError(f"Cannot advance clock by negative {seconds}s")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        """Jump to *timestamp*, which must not be in the past."""
        if timestamp < self._now:
            raise ClockError(f"Cannot rewind clock from {self._now} to {timestamp}")
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
