"""
Concurrency gate for job admission.

A counting gate: at most `capacity` jobs hold a processing slot at once.
The gate knows nothing about jobs or queues. The job service decides which
pending job takes a freed slot (FIFO).
"""

import logging
import threading

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """
    Bounded slot counter.

    try_admit() never blocks. release() on an empty gate is a caller bug;
    it is logged and ignored so the counter can never go negative.
    """

    def __init__(self, capacity: int):
        """
        Args:
            capacity: Maximum concurrent slots (Limits.max_concurrent_jobs)
        """
        if capacity <= 0:
            raise ValueError(f"Gate capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def available(self) -> int:
        with self._lock:
            return self._capacity - self._in_flight

    def try_admit(self) -> bool:
        """
        Take a slot if one is free.

        Returns:
            True if a slot was taken
        """
        with self._lock:
            if self._in_flight >= self._capacity:
                return False
            self._in_flight += 1
            logger.debug(f"[Gate] Admitted, in flight: {self._in_flight}/{self._capacity}")
            return True

    def release(self) -> None:
        """Give back a slot."""
        with self._lock:
            if self._in_flight == 0:
                logger.warning("[Gate] Release with no slot in flight ignored")
                return
            self._in_flight -= 1
            logger.debug(f"[Gate] Released, in flight: {self._in_flight}/{self._capacity}")
