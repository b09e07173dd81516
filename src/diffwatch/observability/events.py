"""Diagnostic event records for the change-detection pipeline.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Watcher events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DirectorySubscribed:
    """A directory was added to the watched set.

    Attributes:
        path: Absolute directory path.
        dynamic: True if subscribed after a directory-creation event.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    dynamic: bool
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ChangeEmitted:
    """A debounced change event was delivered to the event queue.

    Attributes:
        path: Path of the changed file or directory.
        operation: Normalized operation name.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    operation: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ItemDropped:
    """An event or error was discarded because its queue was full.

    Attributes:
        channel: Which queue overflowed.
        path: Event path, or the error message for dropped errors.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    channel: Literal["events", "errors"]
    path: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Content events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SnapshotTaken:
    """A file was read into the snapshot store.

    Attributes:
        path: File path.
        exists: Whether the file existed at read time.
        size: Number of bytes read.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    exists: bool
    size: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DiffComputed:
    """Two snapshots were diffed.

    Attributes:
        path: File path.
        added: Number of added lines.
        deleted: Number of deleted lines.
        binary: True if either side was classified binary.
        duration_ms: Time spent computing the diff.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    added: int
    deleted: int
    binary: bool
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type WatchEvent = (
    DirectorySubscribed
    | ChangeEmitted
    | ItemDropped
    | SnapshotTaken
    | DiffComputed
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
