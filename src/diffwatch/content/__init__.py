"""Content layer — file snapshots and line diffs.

Holds the last-read content of every tracked path and computes structured
line-level diffs between successive snapshots.
"""

from diffwatch.content.differ import (
    DiffEngine,
    DiffLine,
    DiffResult,
    LineKind,
    is_binary_content,
    structured_diff,
)
from diffwatch.content.snapshot import Snapshot, SnapshotStore

__all__ = [
    "DiffEngine",
    "DiffLine",
    "DiffResult",
    "LineKind",
    "Snapshot",
    "SnapshotStore",
    "is_binary_content",
    "structured_diff",
]
