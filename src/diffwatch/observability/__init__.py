"""Pipeline observability — a queryable record of watcher and diff activity.

Quick Start:
    >>> from diffwatch.observability import EventLog, WatchCollector
    >>> collector = WatchCollector(EventLog())
    >>> # Pass collector to DirectoryWatcher / DiffSession / DiffEngine
    >>> collector.log.query(event_type=ItemDropped)

"""

from diffwatch.observability.collector import WatchCollector
from diffwatch.observability.events import (
    ChangeEmitted,
    DiffComputed,
    DirectorySubscribed,
    ItemDropped,
    SnapshotTaken,
    WatchEvent,
    now_ns,
)
from diffwatch.observability.log import EventLog

__all__ = [
    "ChangeEmitted",
    "DiffComputed",
    "DirectorySubscribed",
    "EventLog",
    "ItemDropped",
    "SnapshotTaken",
    "WatchCollector",
    "WatchEvent",
    "now_ns",
]
