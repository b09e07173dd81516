"""Watch layer — filesystem notifications as debounced change events.

Subscribes to a path (optionally its whole non-excluded subtree), normalizes
raw notifications and coalesces bursts per path before emitting them.
"""

from diffwatch.watch.debouncer import Debouncer
from diffwatch.watch.watcher import (
    EXCLUDED_DIRS,
    DirectoryWatcher,
    Event,
    Operation,
    coalesce_changes,
    normalize_change,
)

__all__ = [
    "EXCLUDED_DIRS",
    "Debouncer",
    "DirectoryWatcher",
    "Event",
    "Operation",
    "coalesce_changes",
    "normalize_change",
]
