"""Diffwatch error hierarchy.

All diffwatch-specific errors inherit from DiffwatchError for easy catching.
"""

from __future__ import annotations


class DiffwatchError(Exception):
    """Base error for all diffwatch operations."""


class ConfigError(DiffwatchError):
    """Invalid or unreadable configuration."""


class WatcherError(DiffwatchError):
    """The filesystem watcher could not subscribe to a path."""


class SnapshotError(DiffwatchError):
    """A file could not be read for reasons other than it not existing."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class FileTooLargeError(DiffwatchError):
    """A file exceeds the size cutoff applied before diffing."""

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(f"file too large for diff ({size} bytes, max {limit} bytes): {path}")
        self.path = path
        self.size = size
        self.limit = limit
