"""Snapshot store — the last-read content of every tracked path.

Each call to ``SnapshotStore.update`` reads a file, swaps the new snapshot in
and hands back the previous one, giving the caller both sides of a diff.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from diffwatch._errors import SnapshotError

if TYPE_CHECKING:
    from diffwatch.observability.collector import WatchCollector


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The content (or absence) of a file at one point in time.

    Attributes:
        path: Path the content was read from.
        content: Raw bytes. Always empty when ``exists`` is False.
        exists: Whether the file existed when it was read.

    """

    path: str
    content: bytes = b""
    exists: bool = True

    def __post_init__(self) -> None:
        if not self.exists and self.content:
            msg = f"snapshot of missing file {self.path!r} cannot carry content"
            raise ValueError(msg)

    @classmethod
    def missing(cls, path: str) -> Snapshot:
        """Snapshot of a path with no file behind it."""
        return cls(path=path, content=b"", exists=False)

    @classmethod
    def read(cls, path: str | Path) -> Snapshot:
        """Read ``path`` from disk.

        A missing file yields a ``missing`` snapshot; any other OS error is
        raised as ``SnapshotError``.

        """
        path_str = str(path)
        try:
            content = Path(path).read_bytes()
        except FileNotFoundError:
            return cls.missing(path_str)
        except OSError as e:
            msg = f"reading file {path_str}: {e}"
            raise SnapshotError(path_str, msg) from e
        return cls(path=path_str, content=content, exists=True)


class SnapshotStore:
    """Keeps the last snapshot per path.

    One lock guards the whole map and is held across the file read, so
    updates are applied in the order their reads happened.

    Args:
        collector: Optional diagnostics collector.

    """

    def __init__(self, collector: WatchCollector | None = None) -> None:
        self._snapshots: dict[str, Snapshot] = {}
        self._lock = threading.Lock()
        self._collector = collector

    def update(self, path: str | Path) -> tuple[Snapshot, Snapshot]:
        """Read ``path`` and store the result.

        Returns:
            ``(old, new)``. ``old`` is a missing snapshot the first time a
            path is seen.

        Raises:
            SnapshotError: The file exists but could not be read. The stored
                snapshot for ``path`` is left untouched.

        """
        key = str(path)
        with self._lock:
            new = Snapshot.read(key)
            old = self._snapshots.get(key)
            self._snapshots[key] = new

        if self._collector is not None:
            self._collector.record_snapshot(key, exists=new.exists, size=len(new.content))

        return (old if old is not None else Snapshot.missing(key)), new

    def get(self, path: str | Path) -> Snapshot | None:
        """Return the stored snapshot for ``path`` without reading the disk."""
        with self._lock:
            return self._snapshots.get(str(path))

    def remove(self, path: str | Path) -> None:
        """Stop tracking ``path``."""
        with self._lock:
            self._snapshots.pop(str(path), None)

    def clear(self) -> None:
        """Drop every tracked snapshot."""
        with self._lock:
            self._snapshots.clear()

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
