"""Diff session — turns watcher events into diffs.

Orchestrates the consumer side of the pipeline:
    1. DirectoryWatcher emits a debounced Event
    2. Directories are skipped, oversized files are refused
    3. SnapshotStore.update reads the file and returns (old, new)
    4. DiffEngine.compute produces the DiffResult

Size gating lives here rather than in the engine: ``compute`` is unbounded
in time, so files above ``max_diff_bytes`` are never read.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from diffwatch._errors import DiffwatchError, FileTooLargeError, SnapshotError
from diffwatch.config import DEFAULT_MAX_DIFF_BYTES, EXCLUDED_DIRS
from diffwatch.content.differ import DiffEngine
from diffwatch.content.snapshot import SnapshotStore
from diffwatch.watch.watcher import Operation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from diffwatch.config import DiffwatchConfig
    from diffwatch.content.differ import DiffResult
    from diffwatch.observability.collector import WatchCollector
    from diffwatch.watch.watcher import DirectoryWatcher, Event

logger = structlog.get_logger()


class DiffSession:
    """Keeps snapshots for watched files and diffs them on every event.

    Args:
        store: Snapshot store to use; a fresh one is created if omitted.
        engine: Diff engine to use; a default one is created if omitted.
        max_diff_bytes: Files larger than this raise ``FileTooLargeError``.
        collector: Optional diagnostics collector, shared with the defaults.

    """

    def __init__(
        self,
        store: SnapshotStore | None = None,
        engine: DiffEngine | None = None,
        *,
        max_diff_bytes: int = DEFAULT_MAX_DIFF_BYTES,
        collector: WatchCollector | None = None,
    ) -> None:
        self._store = store if store is not None else SnapshotStore(collector=collector)
        self._engine = engine if engine is not None else DiffEngine(collector=collector)
        self._max_diff_bytes = max_diff_bytes

    @classmethod
    def from_config(
        cls,
        config: DiffwatchConfig,
        collector: WatchCollector | None = None,
    ) -> DiffSession:
        return cls(
            SnapshotStore(collector=collector),
            DiffEngine(context_lines=config.context_lines, collector=collector),
            max_diff_bytes=config.max_diff_bytes,
            collector=collector,
        )

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def engine(self) -> DiffEngine:
        return self._engine

    def process(self, event: Event) -> DiffResult | None:
        """Diff the file behind ``event``.

        Returns:
            The diff, or None for directories and for changes that left the
            content as it was.

        Raises:
            FileTooLargeError: The file exceeds ``max_diff_bytes``.
            SnapshotError: The file could not be inspected or read.

        """
        if event.operation is not Operation.REMOVE:
            try:
                stat = os.stat(event.path)
            except FileNotFoundError:
                # Gone before we got to it; diff it as a deletion.
                pass
            except OSError as e:
                msg = f"reading file {event.path}: {e}"
                raise SnapshotError(event.path, msg) from e
            else:
                if os.path.isdir(event.path):
                    return None
                if stat.st_size > self._max_diff_bytes:
                    raise FileTooLargeError(event.path, stat.st_size, self._max_diff_bytes)

        old, new = self._store.update(event.path)
        result = self._engine.compute(old, new)
        return result if result.has_diff else None

    def seed(
        self,
        root: str,
        *,
        recursive: bool = False,
        exclude_dirs: frozenset[str] = EXCLUDED_DIRS,
    ) -> int:
        """Snapshot every regular file in ``root`` (or ``root`` itself).

        Seeding means the first change to an existing file is diffed against
        its content at startup instead of being reported as a new file.
        With ``recursive`` the whole tree is seeded, skipping the same
        directories a recursive watcher skips.

        Returns:
            Number of files snapshotted.

        """
        if os.path.isfile(root):
            paths = [root]
        elif recursive:
            paths = list(_walk_files(root, exclude_dirs))
        else:
            with os.scandir(root) as entries:
                paths = [entry.path for entry in entries if entry.is_file(follow_symlinks=False)]

        count = 0
        for path in paths:
            try:
                if os.path.getsize(path) > self._max_diff_bytes:
                    continue
                self._store.update(path)
            except (OSError, DiffwatchError) as e:
                logger.debug("seed_skipped", path=path, error=str(e))
                continue
            count += 1
        return count

    def run(self, watcher: DirectoryWatcher) -> Iterator[tuple[Event, DiffResult | DiffwatchError | None]]:
        """Consume ``watcher`` events until it is closed.

        Yields ``(event, outcome)`` pairs where outcome is the DiffResult, a
        DiffwatchError raised while processing, or None when nothing changed.

        """
        for event in watcher.events():
            try:
                outcome: DiffResult | DiffwatchError | None = self.process(event)
            except DiffwatchError as e:
                logger.debug("event_not_diffed", path=event.path, error=str(e))
                outcome = e
            yield event, outcome


def _walk_files(root: str, exclude_dirs: frozenset[str]) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [
            name for name in dirnames
            if name not in exclude_dirs and not os.path.islink(os.path.join(dirpath, name))
        ]
        for name in filenames:
            path = os.path.join(dirpath, name)
            if os.path.isfile(path) and not os.path.islink(path):
                yield path
