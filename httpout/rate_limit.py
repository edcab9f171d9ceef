import threading
from typing import Optional


class RateLimiter:
    """
    Drop-based send gate.

    A send is allowed when at least ``interval_msec`` milliseconds have passed
    since the last attempted send. Disallowed sends are dropped by the caller,
    there is no queueing and no burst allowance. An interval of 0 disables
    the gate.
    """

    def __init__(self, interval_msec: int = 0):
        if interval_msec < 0:
            raise ValueError("interval_msec must not be negative")

        self.interval_msec = interval_msec
        self._last_attempt: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.interval_msec != 0

    @property
    def last_attempt(self) -> Optional[float]:
        return self._last_attempt

    def _allows(self, now: float) -> bool:
        if not self.enabled or self._last_attempt is None:
            return True
        return (now - self._last_attempt) * 1000.0 >= self.interval_msec

    def should_send(self, now: float) -> bool:
        """
        Check whether a send at ``now`` (epoch seconds) is allowed.
        """
        with self._lock:
            return self._allows(now)

    def record_attempt(self, now: float) -> None:
        """
        Record a send attempt made at ``now``. Never moves the baseline back.
        """
        if not self.enabled:
            return

        with self._lock:
            if self._last_attempt is None or now > self._last_attempt:
                self._last_attempt = now

    def try_acquire(self, now: float) -> bool:
        """
        Check and record in one step.

        Returns:
            bool: True if the send may proceed, in which case ``now`` is the
                new baseline.
        """
        if not self.enabled:
            return True

        with self._lock:
            if not self._allows(now):
                return False
            if self._last_attempt is None or now > self._last_attempt:
                self._last_attempt = now
            return True
