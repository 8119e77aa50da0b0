from __future__ import annotations

import threading
import time
from typing import Callable


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class MonotonicIdFactory:
    """
    Deployment id generator.

    Ids are decimal epoch-millisecond strings, bumped so each id is strictly
    greater than the previous one. Two triggers inside the same millisecond
    (or a wall clock stepping backwards) still get distinct ids.
    """

    def __init__(self, clock_ms: Callable[[], int] = _epoch_ms) -> None:
        self._clock_ms = clock_ms
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = max(int(self._clock_ms()), self._last + 1)
            self._last = value
        # Zero-pad so the URL suffix (last 6 chars) always exists.
        return str(value).rjust(6, "0")
