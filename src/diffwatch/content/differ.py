"""Line differ — structured diff between two file snapshots.

Compares the old and new snapshot of a file and produces a ``DiffResult``:
an ordered tuple of ``DiffLine`` records plus a conventional unified diff
text for plain-text consumers.

Only whole lines are compared. A replaced block is reported as all of its
old lines deleted followed by all of its new lines added; individual lines
inside a replaced block are not paired up.
"""

from __future__ import annotations

import difflib
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from diffwatch.config import DEFAULT_CONTEXT_LINES
from diffwatch.content.snapshot import Snapshot

if TYPE_CHECKING:
    from diffwatch.observability.collector import WatchCollector

# Number of leading bytes inspected by the binary heuristic.
BINARY_SAMPLE_SIZE = 8192

# Share of non-printable bytes above which content is treated as binary.
BINARY_THRESHOLD = 0.30

_TEXT_CONTROL_BYTES = frozenset({0x09, 0x0A, 0x0D})


class LineKind(Enum):
    """How a line relates the old snapshot to the new one."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single line of a structured diff.

    Attributes:
        kind: Whether the line was kept, added or deleted.
        old_line: 1-based line number in the old content (None for additions).
        new_line: 1-based line number in the new content (None for deletions).
        content: Line text without its terminating newline.

    """

    kind: LineKind
    old_line: int | None
    new_line: int | None
    content: str


@dataclass(frozen=True, slots=True)
class DiffResult:
    """The outcome of comparing two snapshots of one path.

    Attributes:
        path: The compared path.
        lines: Structured lines in document order. Empty for binary content.
        has_diff: True if anything changed.
        is_new: The file did not exist before.
        is_deleted: The file no longer exists.
        is_binary: At least one side was classified as binary.
        unified: Unified diff text, or a one-line notice for binary content.

    """

    path: str
    lines: tuple[DiffLine, ...] = ()
    has_diff: bool = False
    is_new: bool = False
    is_deleted: bool = False
    is_binary: bool = False
    unified: str = ""

    @property
    def added_count(self) -> int:
        return sum(1 for line in self.lines if line.kind is LineKind.ADDED)

    @property
    def deleted_count(self) -> int:
        return sum(1 for line in self.lines if line.kind is LineKind.DELETED)


def is_binary_content(content: bytes) -> bool:
    """Guess whether ``content`` is binary.

    This is an approximation, not a format sniffer. Only the first
    ``BINARY_SAMPLE_SIZE`` bytes are looked at: a NUL byte anywhere in the
    sample means binary; otherwise the content is binary when more than
    ``BINARY_THRESHOLD`` of the sample is control bytes (other than tab, LF
    and CR) or bytes at or above 0x7F.

    """
    sample = content[:BINARY_SAMPLE_SIZE]
    if not sample:
        return False
    if 0 in sample:
        return True

    non_printable = sum(
        1 for b in sample if (b < 0x20 and b not in _TEXT_CONTROL_BYTES) or b >= 0x7F
    )
    return non_printable / len(sample) > BINARY_THRESHOLD


def split_lines(content: bytes) -> list[str]:
    """Decode ``content`` and split it on newlines.

    A final newline terminates the last line rather than starting an empty
    one, so ``b"a\\nb\\n"`` and ``b"a\\nb"`` both give two lines.

    """
    if not content:
        return []
    lines = content.decode("utf-8", errors="replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


class DiffEngine:
    """Computes structured diffs between snapshots.

    Stateless apart from its settings; one engine can serve any number of
    threads.

    Args:
        context_lines: Context window of the unified diff text.
        collector: Optional diagnostics collector.

    """

    __slots__ = ("_collector", "_context_lines")

    def __init__(
        self,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        collector: WatchCollector | None = None,
    ) -> None:
        self._context_lines = context_lines
        self._collector = collector

    def compute(self, old: Snapshot, new: Snapshot) -> DiffResult:
        """Diff ``old`` against ``new``.

        Decision order:
            1. Only the old side exists: deletion.
            2. Only the new side exists: creation.
            3. Both exist: binary notice, or a line diff.
            4. Neither exists: empty result.

        """
        start = time.perf_counter()

        if old.exists and not new.exists:
            result = self._deleted(old)
        elif new.exists and not old.exists:
            result = self._created(new)
        elif old.exists and new.exists:
            result = self._modified(old, new)
        else:
            result = DiffResult(path=new.path)

        if self._collector is not None:
            self._collector.record_diff(
                result.path,
                added=result.added_count,
                deleted=result.deleted_count,
                binary=result.is_binary,
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        return result

    def compare_files(self, old_path: str | Path, new_path: str | Path) -> DiffResult:
        """Diff two files on disk without involving a watcher or store."""
        return self.compute(Snapshot.read(old_path), Snapshot.read(new_path))

    def _deleted(self, old: Snapshot) -> DiffResult:
        if is_binary_content(old.content):
            return DiffResult(
                path=old.path,
                has_diff=True,
                is_deleted=True,
                is_binary=True,
                unified=f"Binary file {old.path} deleted\n",
            )

        old_lines = split_lines(old.content)
        lines = tuple(
            DiffLine(LineKind.DELETED, i, None, text) for i, text in enumerate(old_lines, 1)
        )
        unified = self._unified(old_lines, [], old.path, "/dev/null")
        return DiffResult(
            path=old.path,
            lines=lines,
            has_diff=True,
            is_deleted=True,
            unified=unified or f"--- {old.path}\n+++ /dev/null\n",
        )

    def _created(self, new: Snapshot) -> DiffResult:
        if is_binary_content(new.content):
            return DiffResult(
                path=new.path,
                has_diff=True,
                is_new=True,
                is_binary=True,
                unified=f"Binary file {new.path} created\n",
            )

        new_lines = split_lines(new.content)
        lines = tuple(
            DiffLine(LineKind.ADDED, None, j, text) for j, text in enumerate(new_lines, 1)
        )
        unified = self._unified([], new_lines, "/dev/null", new.path)
        return DiffResult(
            path=new.path,
            lines=lines,
            has_diff=True,
            is_new=True,
            unified=unified or f"--- /dev/null\n+++ {new.path}\n",
        )

    def _modified(self, old: Snapshot, new: Snapshot) -> DiffResult:
        old_binary = is_binary_content(old.content)
        new_binary = is_binary_content(new.content)

        if old_binary or new_binary:
            if old_binary and new_binary:
                notice = f"Binary file {new.path} modified\n"
            elif new_binary:
                notice = f"File {new.path} changed from text to binary\n"
            else:
                notice = f"File {new.path} changed from binary to text\n"
            return DiffResult(path=new.path, has_diff=True, is_binary=True, unified=notice)

        old_lines = split_lines(old.content)
        new_lines = split_lines(new.content)
        unified = self._unified(old_lines, new_lines, old.path, new.path)
        return DiffResult(
            path=new.path,
            lines=structured_diff(old_lines, new_lines),
            has_diff=bool(unified),
            unified=unified,
        )

    def _unified(self, old_lines: list[str], new_lines: list[str], from_file: str, to_file: str) -> str:
        diff = difflib.unified_diff(
            old_lines,
            new_lines,
            fromfile=from_file,
            tofile=to_file,
            n=self._context_lines,
            lineterm="",
        )
        return "".join(f"{line}\n" for line in diff)


def structured_diff(old_lines: list[str], new_lines: list[str]) -> tuple[DiffLine, ...]:
    """Translate SequenceMatcher opcodes into ordered DiffLines.

    ``replace`` spans are emitted as the whole old block deleted, then the
    whole new block added.

    """
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines)
    lines: list[DiffLine] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for offset in range(i2 - i1):
                lines.append(
                    DiffLine(LineKind.UNCHANGED, i1 + offset + 1, j1 + offset + 1, old_lines[i1 + offset])
                )
            continue

        if tag in ("delete", "replace"):
            lines.extend(
                DiffLine(LineKind.DELETED, i + 1, None, old_lines[i]) for i in range(i1, i2)
            )
        if tag in ("insert", "replace"):
            lines.extend(
                DiffLine(LineKind.ADDED, None, j + 1, new_lines[j]) for j in range(j1, j2)
            )

    return tuple(lines)
