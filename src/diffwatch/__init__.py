"""Diffwatch — watch files change, line by line.

Turns noisy filesystem notifications into a debounced stream of change
events, keeps the last content of every changed file and diffs each new
version against the previous one.

Quick start::

    from diffwatch import DiffResult, DiffSession, DirectoryWatcher

    with DirectoryWatcher("src/", recursive=True) as watcher:
        session = DiffSession()
        for event, outcome in session.run(watcher):
            if isinstance(outcome, DiffResult):
                print(outcome.unified)

Offline comparison, no watcher involved::

    from diffwatch import DiffEngine

    result = DiffEngine().compare_files("old.txt", "new.txt")

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "DiffEngine",
    "DiffResult",
    "DiffSession",
    "DiffwatchConfig",
    "DirectoryWatcher",
    "Event",
    "Operation",
    "Snapshot",
    "SnapshotStore",
    "__version__",
]

_LAZY_IMPORTS = {
    "DiffEngine": "diffwatch.content.differ",
    "DiffResult": "diffwatch.content.differ",
    "DiffSession": "diffwatch.session",
    "DiffwatchConfig": "diffwatch.config",
    "DirectoryWatcher": "diffwatch.watch.watcher",
    "Event": "diffwatch.watch.watcher",
    "Operation": "diffwatch.watch.watcher",
    "Snapshot": "diffwatch.content.snapshot",
    "SnapshotStore": "diffwatch.content.snapshot",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import diffwatch`` fast; watchfiles is only loaded once a
    watcher is actually needed.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
