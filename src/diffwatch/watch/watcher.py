"""Directory watcher — debounced, normalized change events for a path.

Subscribes to filesystem notifications for a file or directory, optionally
for every non-excluded directory below it, and emits one ``Event`` per path
once that path has been quiet for the debounce delay.

Design:
- watchfiles runs in a background thread with ``recursive=False``, given an
  explicit list of directories (one OS watch per directory)
- Recursive mode walks the tree in a background thread, pruning
  ``EXCLUDED_DIRS``, and records each directory in the watched set
- A created directory is walked in its own short-lived thread; when the
  watched set changes a new watchfiles run is started with the longer list,
  and the previous run keeps delivering until the new one has subscribed
- Each raw batch is reduced to one operation per path before debouncing
- Every raw change goes through the per-path Debouncer; the fired callback
  puts the event on a bounded queue, dropping it if the queue is full
"""

from __future__ import annotations

import functools
import os
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from watchfiles import Change, watch

from diffwatch._errors import WatcherError
from diffwatch.config import EXCLUDED_DIRS, DiffwatchConfig
from diffwatch.watch.debouncer import Debouncer

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from diffwatch._types import WatchedDir
    from diffwatch.observability.collector import WatchCollector

logger = structlog.get_logger()

__all__ = [
    "EXCLUDED_DIRS",
    "DirectoryWatcher",
    "Event",
    "Operation",
    "coalesce_changes",
    "normalize_change",
]


class Operation(Enum):
    """Normalized filesystem operation."""

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    CHMOD = "chmod"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Event:
    """A debounced change to one path.

    Attributes:
        path: Absolute path of the changed file or directory.
        operation: What happened to it.
        timestamp: Wall-clock time the raw notification was received.

    """

    path: str
    operation: Operation
    timestamp: datetime


# Mapping from watchfiles Change enum to our operations. watchfiles reports
# renames as a deletion plus an addition and attribute changes as modifications.
_CHANGE_OPERATION_MAP: dict[Change, Operation] = {
    Change.added: Operation.CREATE,
    Change.modified: Operation.WRITE,
    Change.deleted: Operation.REMOVE,
}


def normalize_change(change: object) -> Operation:
    """Map a raw watchfiles change to an ``Operation``; unknown codes map to UNKNOWN."""
    return _CHANGE_OPERATION_MAP.get(change, Operation.UNKNOWN)  # type: ignore[call-overload]


def coalesce_changes(raw_changes: Iterable[tuple[Change, str]]) -> list[tuple[str, Operation]]:
    """Reduce a raw batch to one operation per path, ordered by path.

    watchfiles yields a batch as an unordered set, so when one path has
    several changes the result is decided by the filesystem: a path that is
    gone was removed; a path that exists was created if any of its changes
    was an addition, otherwise written.
    """
    by_path: dict[str, set[Operation]] = {}
    for change, path in raw_changes:
        by_path.setdefault(path, set()).add(normalize_change(change))

    merged: list[tuple[str, Operation]] = []
    for path in sorted(by_path):
        operations = by_path[path]
        if len(operations) == 1:
            (operation,) = operations
        elif not os.path.lexists(path):
            operation = Operation.REMOVE
        elif Operation.CREATE in operations:
            operation = Operation.CREATE
        else:
            operation = Operation.WRITE
        merged.append((path, operation))
    return merged


class _Generation:
    """One watchfiles run over a fixed directory list."""

    __slots__ = ("ready", "retired", "targets", "thread")

    def __init__(self, targets: list[str]) -> None:
        self.targets = targets
        # Set once watchfiles has subscribed every target.
        self.ready = threading.Event()
        self.retired = threading.Event()
        self.thread: threading.Thread | None = None


class _WakeSignal:
    """Stop event handed to watchfiles: set on close or when its run is retired."""

    __slots__ = ("_events",)

    def __init__(self, *events: threading.Event) -> None:
        self._events = events

    def is_set(self) -> bool:
        return any(event.is_set() for event in self._events)


def _raise_unless_permission(error: OSError) -> None:
    if isinstance(error, PermissionError):
        logger.debug("watch_dir_permission_denied", path=error.filename)
        return
    raise error


class DirectoryWatcher:
    """Watches a path and emits debounced change events.

    The watcher starts on construction and runs until ``close()``. Events
    and errors are read from bounded queues through ``events()`` and
    ``errors()``; when a queue is full new items are dropped rather than
    blocking the watch loop.

    Args:
        path: File or directory to watch.
        recursive: Also watch every non-excluded directory below ``path``.
        config: Tunables (debounce delay, queue sizes, exclusions). ``root``
            and ``recursive`` of the config are ignored in favour of the
            explicit arguments.
        collector: Optional diagnostics collector.

    Raises:
        WatcherError: ``path`` does not exist or cannot be read.

    """

    def __init__(
        self,
        path: str | Path,
        recursive: bool = False,
        *,
        config: DiffwatchConfig | None = None,
        collector: WatchCollector | None = None,
    ) -> None:
        self._config = config if config is not None else DiffwatchConfig()
        self._collector = collector
        self._recursive = recursive
        self._watch_path = os.path.abspath(os.fspath(path))
        self._check_watchable(self._watch_path)

        self._events: queue.Queue[Event] = queue.Queue(maxsize=self._config.event_buffer)
        self._errors: queue.Queue[Exception] = queue.Queue(maxsize=self._config.error_buffer)
        self._debouncer = Debouncer(self._config.debounce_seconds)

        # Guards _closed and both queues' drop counters.
        self._send_lock = threading.Lock()
        self._closed = False
        self._dropped_events = 0
        self._dropped_errors = 0

        self._dirs_lock = threading.Lock()
        self._watched_dirs: set[WatchedDir] = set()

        self._stop_event = threading.Event()
        self._resubscribe = threading.Event()

        # Root first so its events are not missed while the tree is walked.
        self._record_dir(self._watch_path, dynamic=False)

        self._thread = threading.Thread(
            target=self._watch_loop,
            name="diffwatch-watcher",
            daemon=True,
        )
        self._thread.start()

        if recursive:
            threading.Thread(
                target=self._initial_walk,
                name="diffwatch-walk",
                daemon=True,
            ).start()

        logger.info(
            "watcher_started",
            path=self._watch_path,
            recursive=recursive,
            debounce_ms=self._config.debounce_ms,
        )

    @classmethod
    def from_config(
        cls,
        config: DiffwatchConfig,
        collector: WatchCollector | None = None,
    ) -> DirectoryWatcher:
        """Create a watcher for ``config.root`` honouring ``config.recursive``."""
        return cls(config.root, config.recursive, config=config, collector=collector)

    @staticmethod
    def _check_watchable(path: str) -> None:
        try:
            if os.path.isdir(path):
                with os.scandir(path):
                    pass
            else:
                with open(path, "rb"):
                    pass
        except OSError as e:
            msg = f"cannot watch {path}: {e}"
            raise WatcherError(msg) from e

    # ----- Public API -----

    @property
    def watch_path(self) -> str:
        """Absolute path given to the watcher."""
        return self._watch_path

    @property
    def is_recursive(self) -> bool:
        return self._recursive

    @property
    def closed(self) -> bool:
        with self._send_lock:
            return self._closed

    @property
    def is_running(self) -> bool:
        """Whether the watch thread is alive."""
        return self._thread.is_alive()

    @property
    def watched_dirs(self) -> frozenset[WatchedDir]:
        """Directories subscribed so far."""
        with self._dirs_lock:
            return frozenset(self._watched_dirs)

    @property
    def dropped_events(self) -> int:
        """Events discarded because the event queue was full."""
        with self._send_lock:
            return self._dropped_events

    @property
    def dropped_errors(self) -> int:
        """Errors discarded because the error queue was full."""
        with self._send_lock:
            return self._dropped_errors

    def get_event(self, timeout: float | None = None) -> Event | None:
        """Return the next event, or None if none arrives within ``timeout``."""
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_error(self, timeout: float | None = None) -> Exception | None:
        """Return the next error, or None if none arrives within ``timeout``."""
        try:
            return self._errors.get(timeout=timeout)
        except queue.Empty:
            return None

    def events(self, poll_interval: float = 0.5) -> Iterator[Event]:
        """Yield events as they arrive until the watcher is closed and drained."""
        return self._drain(self._events, poll_interval)

    def errors(self, poll_interval: float = 0.5) -> Iterator[Exception]:
        """Yield errors as they arrive until the watcher is closed and drained."""
        return self._drain(self._errors, poll_interval)

    def _drain(self, source: queue.Queue[Any], poll_interval: float) -> Iterator[Any]:
        while True:
            try:
                item = source.get(timeout=poll_interval)
            except queue.Empty:
                if self.closed:
                    return
                continue
            yield item

    def close(self) -> None:
        """Stop watching. Safe to call more than once."""
        with self._send_lock:
            if self._closed:
                return
            self._closed = True

        self._debouncer.stop()
        self._stop_event.set()
        self._resubscribe.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)

        logger.info("watcher_closed", path=self._watch_path)

    def __enter__(self) -> DirectoryWatcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ----- Sending -----

    def _send_event(self, event: Event) -> None:
        with self._send_lock:
            if self._closed:
                return
            try:
                self._events.put_nowait(event)
            except queue.Full:
                self._dropped_events += 1
                dropped = True
            else:
                dropped = False

        if self._collector is not None:
            if dropped:
                self._collector.record_dropped("events", event.path)
            else:
                self._collector.record_emitted(event.path, event.operation.value)
        if dropped:
            logger.debug("event_dropped", path=event.path, operation=event.operation.value)

    def _send_error(self, error: Exception) -> None:
        with self._send_lock:
            if self._closed:
                return
            try:
                self._errors.put_nowait(error)
            except queue.Full:
                self._dropped_errors += 1
                dropped = True
            else:
                dropped = False

        if dropped:
            if self._collector is not None:
                self._collector.record_dropped("errors", str(error))
            logger.debug("error_dropped", error=str(error))

    # ----- Directory subscription -----

    def _record_dir(self, path: str, *, dynamic: bool) -> bool:
        """Add ``path`` to the watched set. Returns False if it was already there."""
        with self._dirs_lock:
            if path in self._watched_dirs:
                return False
            self._watched_dirs.add(path)

        if self._collector is not None:
            self._collector.record_subscribed(path, dynamic=dynamic)
        logger.debug("watch_dir_added", path=path, dynamic=dynamic)
        return True

    def _subscribe_tree(self, top: str, *, dynamic: bool) -> int:
        """Record ``top`` and every non-excluded directory below it.

        Directories already in the watched set are not descended into.
        Permission errors skip the affected subtree; other OS errors propagate.

        Returns:
            Number of directories newly recorded.

        """
        added = int(self._record_dir(top, dynamic=dynamic))
        exclude = self._config.exclude_dirs

        for dirpath, dirnames, _filenames in os.walk(top, onerror=_raise_unless_permission):
            kept: list[str] = []
            for name in dirnames:
                full = os.path.join(dirpath, name)
                if name in exclude or os.path.islink(full):
                    continue
                if self._record_dir(full, dynamic=dynamic):
                    kept.append(name)
                    added += 1
            dirnames[:] = kept

        return added

    def _initial_walk(self) -> None:
        try:
            added = self._subscribe_tree(self._watch_path, dynamic=False)
        except OSError as e:
            logger.warning("recursive_watch_setup_failed", path=self._watch_path, error=str(e))
            self._send_error(WatcherError(f"recursive watch setup: {e}"))
            return

        logger.info("watch_dirs_collected", count=len(self.watched_dirs), path=self._watch_path)
        if added:
            self._resubscribe.set()

    def _subscribe_created(self, path: str) -> None:
        try:
            self._subscribe_tree(path, dynamic=True)
        except OSError as e:
            logger.warning("new_directory_watch_failed", path=path, error=str(e))
            self._send_error(WatcherError(f"adding new directory to watcher: {e}"))
            return

        # Even a previously recorded directory needs a fresh OS watch once
        # it has been recreated.
        self._resubscribe.set()

    # ----- Watch loop -----

    def _watch_loop(self) -> None:
        """Background thread: keep a watchfiles run covering the watched set.

        When the set grows a new run is started with the longer list. The
        previous run is retired only after the new one has subscribed and one
        full batch window has passed, so every change is seen by at least one
        run. Changes seen by both are merged by the debouncer.
        """
        current: _Generation | None = None
        handover_grace = self._config.poll_step_ms * 6 / 1000
        try:
            while not self._stop_event.is_set():
                self._resubscribe.clear()
                targets = sorted(d for d in self.watched_dirs if os.path.exists(d))
                if self._watch_path not in targets:
                    self._send_error(WatcherError(f"watched path no longer exists: {self._watch_path}"))
                    logger.warning("watch_root_missing", path=self._watch_path)
                    return

                generation = self._start_generation(targets)
                if current is not None:
                    generation.ready.wait(timeout=5.0)
                    self._stop_event.wait(handover_grace)
                    self._retire(current)
                    logger.debug("watcher_resubscribed", count=len(targets))
                current = generation

                self._resubscribe.wait()
        finally:
            if current is not None:
                self._retire(current)

    def _start_generation(self, targets: list[str]) -> _Generation:
        generation = _Generation(targets)
        generation.thread = threading.Thread(
            target=self._run_generation,
            args=(generation,),
            name="diffwatch-notify",
            daemon=True,
        )
        generation.thread.start()
        return generation

    @staticmethod
    def _retire(generation: _Generation) -> None:
        generation.retired.set()
        if generation.thread is not None and generation.thread is not threading.current_thread():
            generation.thread.join(timeout=5.0)

    def _run_generation(self, generation: _Generation) -> None:
        step = self._config.poll_step_ms
        wake = _WakeSignal(self._stop_event, generation.retired)
        try:
            # yield_on_timeout gives an empty batch once the watches are in
            # place, which marks the run as ready even when nothing changes.
            for raw_changes in watch(
                *generation.targets,
                watch_filter=None,
                debounce=step * 4,
                step=step,
                stop_event=wake,
                rust_timeout=step * 2,
                yield_on_timeout=True,
                recursive=False,
                ignore_permission_denied=True,
            ):
                generation.ready.set()
                for path, operation in coalesce_changes(raw_changes):
                    self._handle_change(path, operation)
        except Exception as e:
            if wake.is_set():
                return
            logger.error("watcher_error", path=self._watch_path, error=str(e))
            self._send_error(WatcherError(f"watching {self._watch_path}: {e}"))
            # Brief backoff before resubscribing
            self._stop_event.wait(1.0)
            self._resubscribe.set()
        finally:
            generation.ready.set()

    def _handle_change(self, path: str, operation: Operation) -> None:
        if (
            self._recursive
            and operation is Operation.CREATE
            and os.path.isdir(path)
            and os.path.basename(path) not in self._config.exclude_dirs
        ):
            logger.info("new_directory_detected", path=path)
            threading.Thread(
                target=self._subscribe_created,
                args=(path,),
                name="diffwatch-walk",
                daemon=True,
            ).start()

        event = Event(path=path, operation=operation, timestamp=datetime.now())
        self._debouncer.add(path, functools.partial(self._send_event, event))
