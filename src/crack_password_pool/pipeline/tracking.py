"""
Small synchronization helpers shared by the dispatch loop and the
termination controller.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class AcceptedValue:
    """Write-once cell holding the accepted candidate. The first writer wins."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[str] = None

    def set(self, value: str) -> bool:
        """
        Store ``value`` unless a value is already present.

        Returns:
            bool: True if this call wrote the value
        """
        with self._lock:
            if self._value is not None:
                return False
            self._value = value
            return True

    def get(self) -> Optional[str]:
        with self._lock:
            return self._value

    def is_set(self) -> bool:
        with self._lock:
            return self._value is not None


class InFlightTracker:
    """Counts dispatch steps that have submitted work and not yet applied its outcome."""

    def __init__(self):
        self._cond = threading.Condition()
        self._count = 0

    @contextmanager
    def track(self) -> Iterator[None]:
        with self._cond:
            self._count += 1
        try:
            yield
        finally:
            with self._cond:
                self._count -= 1
                if self._count == 0:
                    self._cond.notify_all()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no step is in flight.

        Returns:
            bool: True if idle, False if ``timeout`` elapsed first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout)
