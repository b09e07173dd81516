"""Event log — bounded, queryable, thread-safe diagnostic store.

Keeps a ring buffer of ``WatchEvent`` records so that callers can inspect
what the watcher subscribed to, what it emitted and what it dropped.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Safe for
    concurrent appends from the watch thread, walker threads and
    debouncer timers.

"""

import threading
from collections import Counter, deque
from typing import Any

from diffwatch.observability.events import WatchEvent


class EventLog:
    """Bounded event store with query support.

    When the buffer is full, the oldest records are discarded automatically.

    Args:
        max_events: Maximum number of records to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[WatchEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: WatchEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[WatchEvent]:
        """Query records with optional filters.

        Args:
            event_type: Only return records of this type.
            since_ns: Only return records at or after this timestamp.
            path: Only return records whose path contains this substring.
            limit: Maximum number of records to return.

        Returns:
            Matching records, most recent first.

        """
        with self._lock:
            snapshot = list(self._events)

        results: list[WatchEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if path is not None and path not in event.path:
                continue
            results.append(event)
        return results

    def count(self, event_type: type) -> int:
        """Number of retained records of the given type."""
        with self._lock:
            return sum(1 for event in self._events if isinstance(event, event_type))

    def recent(self, n: int = 20) -> list[WatchEvent]:
        """Return the N most recent records, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Clear all records and return the count that was cleared."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Return summary statistics about stored records."""
        with self._lock:
            by_type = Counter(type(event).__name__ for event in self._events)
            total = len(self._events)

        return {
            "total": total,
            "max_events": self._max_events,
            "by_type": dict(by_type),
        }
