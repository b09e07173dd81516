"""Watch collector — records pipeline activity into an EventLog.

The watcher, the diff session and the diff engine each take an optional
collector and call its ``record_*`` methods at the points worth inspecting.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from diffwatch.observability.events import (
    ChangeEmitted,
    DiffComputed,
    DirectorySubscribed,
    ItemDropped,
    SnapshotTaken,
    now_ns,
)
from diffwatch.observability.log import EventLog


class WatchCollector:
    """Unified recorder for watcher and content events.

    Args:
        log: The EventLog to store records in. A fresh one is created if omitted.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Watcher -----

    def record_subscribed(self, path: str, *, dynamic: bool = False) -> None:
        self._log.append(DirectorySubscribed(path=path, dynamic=dynamic, timestamp_ns=now_ns()))

    def record_emitted(self, path: str, operation: str) -> None:
        self._log.append(ChangeEmitted(path=path, operation=operation, timestamp_ns=now_ns()))

    def record_dropped(self, channel: str, path: str) -> None:
        self._log.append(
            ItemDropped(
                channel=channel,  # type: ignore[arg-type]
                path=path,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Content -----

    def record_snapshot(self, path: str, *, exists: bool, size: int = 0) -> None:
        self._log.append(SnapshotTaken(path=path, exists=exists, size=size, timestamp_ns=now_ns()))

    def record_diff(
        self,
        path: str,
        *,
        added: int = 0,
        deleted: int = 0,
        binary: bool = False,
        duration_ms: float = 0.0,
    ) -> None:
        self._log.append(
            DiffComputed(
                path=path,
                added=added,
                deleted=deleted,
                binary=binary,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )
