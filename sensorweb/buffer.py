from __future__ import annotations
import threading
import time
from collections import deque
from typing import Deque, List, Optional, Tuple


def now_ms() -> int:
    return int(time.time() * 1000)


class ReadingBuffer:
    """
    Fixed size ring buffer of the most recent readings.

    Every value is stored together with its wall clock timestamp in
    milliseconds. When the buffer is full the oldest reading is dropped.
    The sampling thread appends while the request thread reads, so all
    access goes through one lock.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._values: Deque[float] = deque(maxlen=capacity)
        self._times: Deque[int] = deque(maxlen=capacity)
        self._last_value = 0.0
        self._forced_value = 0.0
        self._forced_remaining = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def append(self, value: float, ts_ms: Optional[int] = None) -> float:
        """Store one reading and return the value actually stored."""
        with self._lock:
            if self._forced_remaining > 0:
                self._forced_remaining -= 1
                value = self._forced_value
            value = float(value)
            self._values.append(value)
            self._times.append(now_ms() if ts_ms is None else int(ts_ms))
            self._last_value = value
            return value

    def snapshot(self) -> Tuple[float, List[float], List[int]]:
        """Last value, values and timestamps read together, so they stay paired."""
        with self._lock:
            return self._last_value, list(self._values), list(self._times)

    def values(self) -> List[float]:
        with self._lock:
            return list(self._values)

    def timestamps(self) -> List[int]:
        with self._lock:
            return list(self._times)

    @property
    def last_value(self) -> float:
        with self._lock:
            return self._last_value

    @property
    def forced_remaining(self) -> int:
        with self._lock:
            return self._forced_remaining

    def force_all(self, value: float) -> int:
        """Overwrite every buffered value. Returns how many were overwritten."""
        value = float(value)
        with self._lock:
            n = len(self._values)
            for i in range(n):
                self._values[i] = value
            if n:
                self._last_value = value
            return n

    def force_next(self, value: float, steps: int) -> None:
        """Replace the next `steps` incoming readings by `value`. steps <= 0 cancels."""
        with self._lock:
            self._forced_value = float(value)
            self._forced_remaining = max(0, int(steps))

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._times.clear()
            self._last_value = 0.0
            self._forced_remaining = 0
