"""Tests for diffwatch.content.differ — structured line diffs."""

from __future__ import annotations

from pathlib import Path

import pytest

from diffwatch.content.differ import (
    BINARY_SAMPLE_SIZE,
    DiffEngine,
    DiffLine,
    DiffResult,
    LineKind,
    is_binary_content,
    split_lines,
    structured_diff,
)
from diffwatch.content.snapshot import Snapshot
from diffwatch.observability import DiffComputed, WatchCollector

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

U, A, D = LineKind.UNCHANGED, LineKind.ADDED, LineKind.DELETED


def _snap(content: bytes | str, path: str = "/tmp/f.txt") -> Snapshot:
    if isinstance(content, str):
        content = content.encode()
    return Snapshot(path=path, content=content, exists=True)


def _gone(path: str = "/tmp/f.txt") -> Snapshot:
    return Snapshot.missing(path)


def _shape(result: DiffResult) -> list[tuple[LineKind, int | None, int | None, str]]:
    return [(line.kind, line.old_line, line.new_line, line.content) for line in result.lines]


# ---------------------------------------------------------------------------
# Line splitting
# ---------------------------------------------------------------------------


class TestSplitLines:
    def test_trailing_newline_does_not_add_line(self) -> None:
        assert split_lines(b"a\nb\n") == ["a", "b"]

    def test_no_trailing_newline(self) -> None:
        assert split_lines(b"a\nb") == ["a", "b"]

    def test_empty(self) -> None:
        assert split_lines(b"") == []

    def test_blank_lines_kept(self) -> None:
        assert split_lines(b"a\n\n\nb\n") == ["a", "", "", "b"]

    def test_invalid_utf8_replaced(self) -> None:
        assert split_lines(b"caf\xe9\n") == ["caf\ufffd"]


# ---------------------------------------------------------------------------
# Binary heuristic
# ---------------------------------------------------------------------------


class TestIsBinaryContent:
    def test_empty_is_text(self) -> None:
        assert is_binary_content(b"") is False

    def test_plain_text(self) -> None:
        assert is_binary_content(b"hello world\n\tindented\r\n") is False

    def test_nul_byte_is_binary(self) -> None:
        assert is_binary_content(b"a" * 1000 + b"\x00" + b"b" * 1000) is True

    def test_nul_at_end_of_sample(self) -> None:
        content = b"a" * (BINARY_SAMPLE_SIZE - 1) + b"\x00"
        assert is_binary_content(content) is True

    def test_nul_beyond_sample_is_ignored(self) -> None:
        content = b"a" * BINARY_SAMPLE_SIZE + b"\x00"
        assert is_binary_content(content) is False

    def test_control_bytes_over_threshold(self) -> None:
        # 40% control bytes
        content = b"\x01" * 40 + b"a" * 60
        assert is_binary_content(content) is True

    def test_control_bytes_under_threshold(self) -> None:
        # 20% control bytes
        content = b"\x01" * 20 + b"a" * 80
        assert is_binary_content(content) is False

    def test_exactly_threshold_is_text(self) -> None:
        content = b"\x02" * 30 + b"a" * 70
        assert is_binary_content(content) is False

    def test_high_bytes_count_as_non_printable(self) -> None:
        content = bytes(range(0x80, 0x100)) + b"a" * 100
        assert is_binary_content(content) is True

    def test_del_byte_counts(self) -> None:
        assert is_binary_content(b"\x7f" * 4 + b"a" * 6) is True

    def test_whitespace_controls_are_text(self) -> None:
        assert is_binary_content(b"\t\n\r" * 100) is False


# ---------------------------------------------------------------------------
# Structured diff
# ---------------------------------------------------------------------------


class TestStructuredDiff:
    def test_worked_example(self) -> None:
        lines = structured_diff(["a", "b", "c"], ["a", "x", "c"])
        assert lines == (
            DiffLine(U, 1, 1, "a"),
            DiffLine(D, 2, None, "b"),
            DiffLine(A, None, 2, "x"),
            DiffLine(U, 3, 3, "c"),
        )

    def test_pure_insert(self) -> None:
        lines = structured_diff(["a", "c"], ["a", "b", "c"])
        assert [(l.kind, l.old_line, l.new_line) for l in lines] == [
            (U, 1, 1),
            (A, None, 2),
            (U, 2, 3),
        ]

    def test_pure_delete(self) -> None:
        lines = structured_diff(["a", "b", "c"], ["a", "c"])
        assert [(l.kind, l.old_line, l.new_line) for l in lines] == [
            (U, 1, 1),
            (D, 2, None),
            (U, 3, 2),
        ]

    def test_replace_block_is_whole_delete_then_whole_add(self) -> None:
        lines = structured_diff(["keep", "o1", "o2", "end"], ["keep", "n1", "n2", "n3", "end"])
        kinds = [l.kind for l in lines]
        assert kinds == [U, D, D, A, A, A, U]
        assert [l.content for l in lines[1:6]] == ["o1", "o2", "n1", "n2", "n3"]


# ---------------------------------------------------------------------------
# DiffEngine.compute
# ---------------------------------------------------------------------------


class TestComputeModified:
    def test_identical_content_has_no_diff(self) -> None:
        snap = _snap("one\ntwo\nthree\n")
        result = DiffEngine().compute(snap, snap)

        assert result.has_diff is False
        assert result.unified == ""
        assert all(line.kind is U for line in result.lines)
        assert len(result.lines) == 3
        assert not result.is_new and not result.is_deleted and not result.is_binary

    def test_worked_example(self) -> None:
        result = DiffEngine().compute(_snap("a\nb\nc\n"), _snap("a\nx\nc\n"))
        assert result.has_diff
        assert _shape(result) == [
            (U, 1, 1, "a"),
            (D, 2, None, "b"),
            (A, None, 2, "x"),
            (U, 3, 3, "c"),
        ]
        assert result.added_count == 1
        assert result.deleted_count == 1

    def test_unified_text(self) -> None:
        old = _snap("a\nb\nc\n", path="/tmp/f.txt")
        new = _snap("a\nx\nc\n", path="/tmp/f.txt")
        result = DiffEngine().compute(old, new)

        assert result.unified.splitlines() == [
            "--- /tmp/f.txt",
            "+++ /tmp/f.txt",
            "@@ -1,3 +1,3 @@",
            " a",
            "-b",
            "+x",
            " c",
        ]

    def test_context_window_is_three_lines(self) -> None:
        old_lines = [f"line{i}" for i in range(1, 21)]
        new_lines = list(old_lines)
        new_lines[9] = "changed"
        result = DiffEngine().compute(
            _snap("\n".join(old_lines) + "\n"), _snap("\n".join(new_lines) + "\n")
        )

        body = [l for l in result.unified.splitlines() if l[:1] in {" ", "-", "+"} and not l.startswith(("---", "+++"))]
        context = [l for l in body if l.startswith(" ")]
        assert len(context) == 6
        assert "@@ -7,7 +7,7 @@" in result.unified

    def test_custom_context_lines(self) -> None:
        old = _snap("a\nb\nc\nd\ne\n")
        new = _snap("a\nb\nX\nd\ne\n")
        result = DiffEngine(context_lines=0).compute(old, new)
        assert "@@ -3 +3 @@" in result.unified

    def test_line_ending_change_is_a_diff(self) -> None:
        result = DiffEngine().compute(_snap(b"a\nb\n"), _snap(b"a\r\nb\r\n"))
        assert result.has_diff

    def test_path_taken_from_new_snapshot(self) -> None:
        result = DiffEngine().compute(_snap("a", path="/old"), _snap("b", path="/new"))
        assert result.path == "/new"


class TestComputeCreatedDeleted:
    def test_deletion(self) -> None:
        result = DiffEngine().compute(_snap("one\ntwo\nthree\n"), _gone())

        assert result.is_deleted
        assert not result.is_new
        assert result.has_diff
        assert _shape(result) == [
            (D, 1, None, "one"),
            (D, 2, None, "two"),
            (D, 3, None, "three"),
        ]
        assert result.unified.startswith("--- /tmp/f.txt\n+++ /dev/null\n")

    @pytest.mark.parametrize("n", [1, 5, 40])
    def test_deletion_numbers_every_line(self, n: int) -> None:
        content = "".join(f"line {i}\n" for i in range(n))
        result = DiffEngine().compute(_snap(content), _gone())
        assert [line.old_line for line in result.lines] == list(range(1, n + 1))
        assert all(line.kind is D and line.new_line is None for line in result.lines)

    def test_creation(self) -> None:
        result = DiffEngine().compute(_gone(), _snap("x\ny\n"))

        assert result.is_new
        assert not result.is_deleted
        assert result.has_diff
        assert _shape(result) == [(A, None, 1, "x"), (A, None, 2, "y")]
        assert result.unified.startswith("--- /dev/null\n+++ /tmp/f.txt\n")

    def test_empty_file_created(self) -> None:
        result = DiffEngine().compute(_gone(), _snap(""))
        assert result.is_new
        assert result.has_diff
        assert result.lines == ()
        assert result.unified == "--- /dev/null\n+++ /tmp/f.txt\n"

    def test_neither_exists(self) -> None:
        result = DiffEngine().compute(_gone(), _gone())
        assert result == DiffResult(path="/tmp/f.txt")
        assert result.has_diff is False


class TestComputeBinary:
    BIN = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"

    def test_binary_deleted(self) -> None:
        result = DiffEngine().compute(_snap(self.BIN), _gone())
        assert result.is_binary and result.is_deleted and result.has_diff
        assert result.lines == ()
        assert result.unified == "Binary file /tmp/f.txt deleted\n"

    def test_binary_created(self) -> None:
        result = DiffEngine().compute(_gone(), _snap(self.BIN))
        assert result.is_binary and result.is_new
        assert result.lines == ()
        assert result.unified == "Binary file /tmp/f.txt created\n"

    def test_binary_modified(self) -> None:
        result = DiffEngine().compute(_snap(self.BIN), _snap(self.BIN + b"\x00"))
        assert result.is_binary and result.has_diff
        assert not result.is_new and not result.is_deleted
        assert result.lines == ()
        assert result.unified == "Binary file /tmp/f.txt modified\n"

    def test_text_to_binary(self) -> None:
        result = DiffEngine().compute(_snap("hello\n"), _snap(self.BIN))
        assert result.is_binary
        assert result.unified == "File /tmp/f.txt changed from text to binary\n"

    def test_binary_to_text(self) -> None:
        result = DiffEngine().compute(_snap(self.BIN), _snap("hello\n"))
        assert result.is_binary
        assert result.unified == "File /tmp/f.txt changed from binary to text\n"


class TestCompareFiles:
    def test_offline_comparison(self, tmp_path: Path) -> None:
        old = tmp_path / "old.txt"
        new = tmp_path / "new.txt"
        old.write_text("a\nb\n")
        new.write_text("a\nc\n")

        result = DiffEngine().compare_files(old, new)
        assert result.has_diff
        assert result.added_count == 1
        assert result.deleted_count == 1

    def test_missing_new_file_is_deletion(self, tmp_path: Path) -> None:
        old = tmp_path / "old.txt"
        old.write_text("a\n")
        result = DiffEngine().compare_files(old, tmp_path / "missing.txt")
        assert result.is_deleted


class TestDiffRecords:
    def test_compute_is_recorded(self) -> None:
        collector = WatchCollector()
        DiffEngine(collector=collector).compute(_snap("a\nb\n"), _snap("a\nc\nd\n"))

        (record,) = collector.log.query(event_type=DiffComputed)
        assert record.added == 2
        assert record.deleted == 1
        assert record.binary is False
        assert record.duration_ms >= 0


class TestDataclasses:
    def test_diff_line_frozen(self) -> None:
        line = DiffLine(U, 1, 1, "a")
        with pytest.raises(AttributeError):
            line.content = "b"  # type: ignore[misc]

    def test_diff_result_hashable(self) -> None:
        a = DiffResult(path="/a", lines=(DiffLine(A, None, 1, "x"),), has_diff=True)
        b = DiffResult(path="/a", lines=(DiffLine(A, None, 1, "x"),), has_diff=True)
        assert a == b
        assert hash(a) == hash(b)
