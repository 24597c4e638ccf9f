from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone


class NumberGenerator:
    """
    Human-facing identifiers derived from the wall clock in milliseconds.

    Never hands out the same millisecond twice in one process; the stores
    carry unique constraints for cross-process collisions.
    """

    def __init__(self, clock_ms: Callable[[], int] | None = None) -> None:
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._lock = threading.Lock()
        self._last = 0

    def _tick(self) -> int:
        with self._lock:
            now = max(self._clock_ms(), self._last + 1)
            self._last = now
            return now

    def application_number(self) -> str:
        return f"APP{self._tick()}"

    def admit_card_number(self) -> str:
        ms = self._tick()
        year = datetime.fromtimestamp(ms / 1000, tz=timezone.utc).year
        return f"ADM{year}{ms}"

    def storage_suffix(self) -> int:
        return self._tick()
