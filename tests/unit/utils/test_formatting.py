"""Unit tests for formatting utilities.

Tests cover:
- IEC unit boundaries for format_size
- Aggregate, tree, volume and report rendering
- JSON-compatible conversions
"""

import json
import os
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dirstat.core.classifier import classify
from dirstat.core.exceptions import ListError, StatError
from dirstat.types.models import DirectoryNode, FileEntry, PathDescription, ScanReport, VolumeStats
from dirstat.utils.formatting import (
    description_to_dict,
    display,
    format_size,
    render_aggregate,
    render_description,
    render_errors,
    render_report,
    render_size_groups,
    render_tree,
    render_volume,
    report_to_dict,
    to_json,
    tree_to_dict,
)


class TestFormatSize:
    """Test suite for format_size function."""

    @pytest.mark.parametrize(
        ("bytes_value", "expected"),
        [
            (0, "0 B"),
            (1, "1 B"),
            (1023, "1023 B"),
            (1024, "1.0 KiB"),
            (1536, "1.5 KiB"),
            (1024**2, "1.0 MiB"),
            (1024**2 - 1, "1.0 MiB"),
            (1024**3 - 1, "1.0 GiB"),
            (1024**3 * 10, "10.0 GiB"),
            (1024**4, "1.0 TiB"),
            (1024**5 * 3, "3.0 PiB"),
        ],
    )
    def test_unit_boundaries(self, bytes_value: int, expected: str) -> None:
        """Values switch unit at every power of 1024."""
        assert format_size(bytes_value) == expected

    def test_rounding_never_shows_1024(self) -> None:
        """A value that rounds up to the next unit is shown in that unit."""
        assert format_size(1048575) == "1.0 MiB"
        assert format_size(1048575, precision=3) == "1023.999 KiB"

    def test_precision(self) -> None:
        """Precision controls decimal places."""
        assert format_size(1536, precision=2) == "1.50 KiB"

    def test_negative_rejected(self) -> None:
        """Negative sizes raise ValueError."""
        with pytest.raises(ValueError, match="non-negative"):
            _ = format_size(-1)

    @given(st.integers(min_value=0, max_value=1024**6))
    def test_always_has_unit(self, value: int) -> None:
        """Property: output always ends with a known unit."""
        assert format_size(value).split(" ")[-1] in {"B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"}


def _tree(tmp_path: Path) -> DirectoryNode:
    root = tmp_path
    _ = (root / "a.txt").write_bytes(b"x" * 10)
    (root / "sub").mkdir()
    file_meta = os.lstat(root / "a.txt")
    dir_meta = os.lstat(root / "sub")
    file_entry = FileEntry(root / "a.txt", root, file_meta, classify(file_meta))
    sub_entry = FileEntry(root / "sub", root, dir_meta, classify(dir_meta))
    error = ListError(root / "sub", PermissionError(13, "Permission denied"))
    return DirectoryNode(
        path=root,
        root=root,
        entry=None,
        children={
            "a.txt": file_entry,
            "sub": DirectoryNode(root / "sub", root, sub_entry, error=error),
            "gone": StatError(root / "gone", FileNotFoundError(2, "No such file or directory")),
        },
    )


class TestRendering:
    """Test text renderers."""

    def test_render_aggregate_sorted_by_key(self) -> None:
        """Lines are size<TAB>key sorted by key."""
        text = render_aggregate({"./sub": 20, ".": 30}, human=False)

        assert text.splitlines() == ["30\t.", "20\t./sub"]

    def test_render_aggregate_human(self) -> None:
        """Human mode uses IEC units."""
        assert render_aggregate({".": 2048}) == "2.0 KiB\t."

    def test_render_tree(self, tmp_path: Path) -> None:
        """Children are listed by name with sizes and errors."""
        lines = render_tree(_tree(tmp_path), human=False).splitlines()

        assert lines[0] == f"{tmp_path}/"
        assert lines[1] == "  a.txt  10"
        assert lines[2].startswith("  gone  [cannot stat")
        assert lines[3].startswith("  sub/  [cannot list directory")

    def test_render_volume(self) -> None:
        """Volume line names mount, device and capacities."""
        stats = VolumeStats(Path("/data"), 4096, 4096, 8192, 4096, 4096, Path("/data"), "/dev/sdb1")

        text = render_volume(stats, human=False)

        assert text == (
            "/data on /data (/dev/sdb1): size 8192, used 4096, free 4096, available 4096, block 4096"
        )

    def test_render_errors(self) -> None:
        """One line per error."""
        errors = [ListError("/x", PermissionError(13, "Permission denied"))]

        assert render_errors(errors) == "error: cannot list directory '/x': Permission denied"

    def test_render_size_groups_skips_singletons(self) -> None:
        """Only sizes shared by two or more files are listed."""
        groups = {1: [Path("/a")], 5: [Path("/b"), Path("/c")]}

        assert render_size_groups(groups, human=False).splitlines() == ["5 (2 files)", "  /b", "  /c"]

    def test_render_report(self) -> None:
        """Report lists each root, a summary and errors."""
        root = Path("/tmp/r")
        report = ScanReport(
            roots=(root,),
            totals={root: {".": 30, "./sub": 20}},
            files=2,
            directories=1,
            entries=3,
            errors=(StatError("/tmp/r/x", FileNotFoundError(2, "No such file or directory")),),
            truncated=True,
            truncation_reason="entry limit of 3 reached",
        )

        text = render_report(report, human=False)

        assert "/tmp/r\n30\t.\n20\t./sub" in text
        assert "2 files, 1 directories, 30 total (truncated: entry limit of 3 reached)" in text
        assert "error: cannot stat '/tmp/r/x'" in text
        assert "error:" not in render_report(report, human=False, show_errors=False)

    def test_render_description(self, tmp_path: Path) -> None:
        """Description shows traits and size."""
        _ = (tmp_path / "f").write_bytes(b"abc")
        metadata = os.lstat(tmp_path / "f")
        description = PathDescription(tmp_path / "f", metadata, classify(metadata), None)

        assert render_description(description, human=False) == f"{tmp_path / 'f'}: File, 3"


class TestJsonConversion:
    """Test JSON-compatible conversions."""

    def test_report_to_dict_round_trips_through_json(self) -> None:
        """The report dictionary is JSON-serializable."""
        root = Path("/tmp/r")
        report = ScanReport(
            roots=(root,),
            totals={root: {".": 30}},
            files=1,
            directories=0,
            entries=1,
            size_groups={30: (root / "a",)},
        )

        data = json.loads(to_json(report_to_dict(report)))

        assert data["totals"] == {"/tmp/r": {".": 30}}
        assert data["total_bytes"] == 30
        assert data["size_groups"] == {"30": ["/tmp/r/a"]}

    def test_tree_to_dict(self, tmp_path: Path) -> None:
        """Nested nodes, files and errors are represented."""
        data = tree_to_dict(_tree(tmp_path))

        children = data["children"]
        assert isinstance(children, dict)
        assert children["a.txt"]["size"] == 10
        assert children["a.txt"]["traits"]["File"] is True
        assert "error" in children["gone"]
        assert "cannot list directory" in children["sub"]["error"]
        _ = json.dumps(data)

    def test_description_to_dict(self) -> None:
        """Missing parts are null."""
        description = PathDescription(Path("/x"), None, None, None, (StatError("/x"),))

        data = description_to_dict(description)

        assert data == {
            "path": "/x",
            "size": None,
            "traits": None,
            "volume": None,
            "errors": ["cannot stat '/x'"],
        }


class TestUndecodableNames:
    """Test rendering of file names that are not valid UTF-8."""

    def test_display_escapes_surrogates(self) -> None:
        """Bytes smuggled in as surrogates are shown as backslash escapes."""
        assert display(os.fsdecode(b"d\xff")) == "d\\xff"

    def test_display_keeps_valid_text(self) -> None:
        """Valid non-ASCII names are unchanged."""
        assert display(Path("/srv/café")) == "/srv/café"

    def test_render_aggregate_is_encodable(self) -> None:
        """Aggregate keys with undecodable bytes encode as UTF-8."""
        text = render_aggregate({".": 1, "./" + os.fsdecode(b"d\xff"): 1}, human=False)

        _ = text.encode("utf-8")
        assert "./d\\xff" in text

    def test_render_tree_is_encodable(self, tmp_path: Path) -> None:
        """Tree names and error messages with undecodable bytes encode as UTF-8."""
        name = os.fsdecode(b"d\xff")
        error = ListError(tmp_path / name, PermissionError(13, "Permission denied"))
        node = DirectoryNode(
            path=tmp_path,
            root=tmp_path,
            entry=None,
            children={name: DirectoryNode(tmp_path / name, tmp_path, None, error=error)},
        )

        text = render_tree(node, human=False)

        _ = text.encode("utf-8")
        assert "  d\\xff/  [cannot list directory" in text

    def test_render_report_is_encodable(self) -> None:
        """Roots and error paths in a report encode as UTF-8."""
        root = Path(os.fsdecode(b"/tmp/r\xfe"))
        report = ScanReport(
            roots=(root,),
            totals={root: {".": 5}},
            files=1,
            directories=0,
            entries=1,
            errors=(StatError(root / "x", FileNotFoundError(2, "No such file or directory")),),
        )

        text = render_report(report, human=False)

        _ = text.encode("utf-8")
        assert "/tmp/r\\xfe\n5\t." in text
        assert "error: cannot stat '/tmp/r\\xfe/x'" in text


class TestFailedRoots:
    """Test report rendering of roots that could not be listed."""

    def test_failed_root_is_marked(self) -> None:
        """A root that failed to list shows its error instead of a zero total."""
        good = Path("/tmp/good")
        missing = Path("/tmp/missing")
        report = ScanReport(
            roots=(good, missing),
            totals={good: {".": 7}, missing: {}},
            files=1,
            directories=0,
            entries=1,
            errors=(ListError(missing, FileNotFoundError(2, "No such file or directory")),),
        )

        text = render_report(report, human=False, show_errors=False)

        assert "/tmp/good\n7\t." in text
        assert "/tmp/missing\n  [cannot list directory '/tmp/missing': No such file or directory]" in text
        assert "/tmp/missing\n0\t." not in text

    def test_empty_root_still_shows_zero(self) -> None:
        """A listable empty root keeps its zero total."""
        root = Path("/tmp/empty")
        report = ScanReport(roots=(root,), totals={root: {}}, files=0, directories=0, entries=0)

        assert "/tmp/empty\n0\t." in render_report(report, human=False)

    def test_error_below_root_is_not_a_root_failure(self) -> None:
        """Listing errors for subdirectories leave the root totals visible."""
        root = Path("/tmp/r")
        report = ScanReport(
            roots=(root,),
            totals={root: {".": 3}},
            files=1,
            directories=1,
            entries=2,
            errors=(ListError(root / "locked", PermissionError(13, "Permission denied")),),
        )

        assert "/tmp/r\n3\t." in render_report(report, human=False)
