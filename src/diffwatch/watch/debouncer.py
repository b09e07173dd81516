"""Per-key debouncer — coalesces bursts of triggers into one delayed callback.

Each key owns at most one pending ``threading.Timer``.  Adding a callback for
a key cancels the pending one and starts a fresh timer, so a callback only
runs once the key has been quiet for ``delay`` seconds, and only the most
recently supplied callback for that key ever runs.

Thread Safety:
    The timer map is guarded by a single lock that is held only while the
    map is mutated, never while a delay elapses or a callback runs.

"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffwatch._types import Callback, DebounceKey


class Debouncer:
    """Delay and coalesce callbacks per key.

    Args:
        delay: Quiet period in seconds before a key's callback fires.

    """

    __slots__ = ("_delay", "_lock", "_stopped", "_timers")

    def __init__(self, delay: float = 0.1) -> None:
        self._delay = delay
        self._timers: dict[DebounceKey, threading.Timer] = {}
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> int:
        """Number of keys with a scheduled, not yet fired callback."""
        with self._lock:
            return len(self._timers)

    def add(self, key: DebounceKey, callback: Callback) -> None:
        """Schedule ``callback`` for ``key``, replacing any pending one."""
        timer = threading.Timer(self._delay, lambda: self._fire(key, callback, timer))
        timer.daemon = True

        with self._lock:
            if self._stopped:
                return
            previous = self._timers.get(key)
            self._timers[key] = timer

        if previous is not None:
            previous.cancel()
        timer.start()

    def _fire(self, key: DebounceKey, callback: Callback, timer: threading.Timer) -> None:
        with self._lock:
            # Superseded (or stopped) between expiry and acquiring the lock
            if self._timers.get(key) is not timer:
                return
            del self._timers[key]

        callback()

    def stop(self) -> None:
        """Cancel all pending callbacks. Later ``add`` calls are ignored."""
        with self._lock:
            self._stopped = True
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancel()
