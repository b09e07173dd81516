"""Diffwatch CLI — diffwatch [path] [-r].

Entry point for the ``diffwatch`` command-line interface. Prints one line
per change event followed by the unified diff of the changed file.
"""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from diffwatch._errors import DiffwatchError
    from diffwatch.content.differ import DiffResult
    from diffwatch.watch.watcher import DirectoryWatcher, Event


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the diffwatch CLI."""
    parser = argparse.ArgumentParser(
        prog="diffwatch",
        description="Watch a file or directory and print line diffs as it changes.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument("path", nargs="?", default=".", help="Path to watch (default: current directory)")
    parser.add_argument(
        "-r", "--recursive", action="store_true", help="Watch all subdirectories recursively",
    )
    parser.add_argument(
        "--max-bytes", type=int, default=None, help="Skip diffing files larger than this",
    )
    parser.add_argument(
        "--debounce-ms", type=int, default=None, help="Quiet period per file before reporting",
    )
    parser.add_argument(
        "--log-level", default="WARNING", help="Log level for diagnostics on stderr",
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit diagnostics as JSON lines",
    )
    return parser


def _get_version() -> str:
    """Get the package version."""
    from diffwatch import __version__

    return __version__


def format_event(event: Event) -> str:
    """One-line summary: ``[HH:MM:SS] op: path``."""
    return f"[{event.timestamp:%H:%M:%S}] {event.operation.value}: {event.path}"


def format_outcome(outcome: DiffResult | DiffwatchError | None) -> str:
    """Text printed under an event line; empty when there is nothing to show."""
    from diffwatch._errors import DiffwatchError

    if outcome is None:
        return ""
    if isinstance(outcome, DiffwatchError):
        return f"  ! {outcome}\n"
    return outcome.unified


def _print_errors(watcher: DirectoryWatcher, stream: TextIO) -> None:
    for error in watcher.errors():
        print(f"diffwatch: {error}", file=stream, flush=True)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    from diffwatch._errors import DiffwatchError
    from diffwatch._logging import configure_logging
    from diffwatch.config_loader import load_config
    from diffwatch.session import DiffSession
    from diffwatch.watch.watcher import DirectoryWatcher

    configure_logging(level=args.log_level, json_format=args.json_logs)

    try:
        config = load_config(
            Path(args.path),
            recursive=True if args.recursive else None,
            max_diff_bytes=args.max_bytes,
            debounce_ms=args.debounce_ms,
        )
        watcher = DirectoryWatcher.from_config(config)
    except DiffwatchError as e:
        print(f"diffwatch: {e}", file=sys.stderr)
        sys.exit(1)

    session = DiffSession.from_config(config)
    session.seed(
        watcher.watch_path,
        recursive=watcher.is_recursive,
        exclude_dirs=config.exclude_dirs,
    )

    mode = "recursively" if watcher.is_recursive else "non-recursively"
    print(f"Watching {watcher.watch_path} ({mode}). Press Ctrl+C to stop.", flush=True)

    threading.Thread(
        target=_print_errors,
        args=(watcher, sys.stderr),
        name="diffwatch-errors",
        daemon=True,
    ).start()

    try:
        for event, outcome in session.run(watcher):
            text = format_outcome(outcome)
            if not text:
                continue
            print(format_event(event))
            print(text, end="", flush=True)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.close()


if __name__ == "__main__":
    main()
