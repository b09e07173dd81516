"""Shared test fixtures for diffwatch."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from diffwatch.config import DiffwatchConfig
from diffwatch.watch.watcher import DirectoryWatcher


@pytest.fixture
def watch_root(tmp_path: Path) -> Path:
    """A directory tree with a few text files and an excluded subtree.

    Layout::

        root/
          notes.txt
          src/
            main.py
            pkg/
              util.py
          node_modules/
            dep/
              index.js

    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "notes.txt").write_text("first\nsecond\n")

    pkg = root / "src" / "pkg"
    pkg.mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hello')\n")
    (pkg / "util.py").write_text("def util():\n    return 1\n")

    dep = root / "node_modules" / "dep"
    dep.mkdir(parents=True)
    (dep / "index.js").write_text("module.exports = {}\n")

    return root


@pytest.fixture
def fast_config() -> DiffwatchConfig:
    """Short debounce so integration tests settle quickly."""
    return DiffwatchConfig(debounce_ms=50, poll_step_ms=20)


@pytest.fixture
def make_watcher(fast_config: DiffwatchConfig) -> Iterator[Callable[..., DirectoryWatcher]]:
    """Factory that builds watchers and closes them after the test."""
    created: list[DirectoryWatcher] = []

    def factory(path: Path, recursive: bool = False, **config_overrides: object) -> DirectoryWatcher:
        config = fast_config
        if config_overrides:
            config = DiffwatchConfig(
                debounce_ms=fast_config.debounce_ms,
                poll_step_ms=fast_config.poll_step_ms,
                **config_overrides,  # type: ignore[arg-type]
            )
        watcher = DirectoryWatcher(path, recursive, config=config)
        created.append(watcher)
        return watcher

    yield factory

    for watcher in created:
        watcher.close()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll ``predicate`` until it returns True or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def collect_paths(watcher: DirectoryWatcher, want: str, timeout: float = 5.0) -> set[str]:
    """Drain events until one for ``want`` arrives or ``timeout`` elapses."""
    seen: set[str] = set()
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline and want not in seen:
        event = watcher.get_event(timeout=0.1)
        if event is not None:
            seen.add(event.path)
    return seen
