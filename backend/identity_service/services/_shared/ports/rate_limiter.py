from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol


class RateLimiter(Protocol):
    """
    Fixed-window, set-if-absent limiter.

    ``claim`` atomically records the key for ``window`` and returns ``True``
    only when no unexpired record existed. Two concurrent callers for the
    same key can never both get ``True``.
    """

    def claim(self, key: str, window: timedelta) -> bool: ...


class InMemoryRateLimiter(RateLimiter):
    """
    Lock-guarded limiter for unit tests.

    :param clock: Source of "now"; inject a controllable callable to move
        time past a window without sleeping.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._deadlines: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def claim(self, key: str, window: timedelta) -> bool:
        with self._lock:
            now = self._clock()
            deadline = self._deadlines.get(key)
            if deadline is not None and deadline > now:
                return False
            self._deadlines[key] = now + window
            return True
