"""Property-based tests for aggregation invariants using Hypothesis.

These tests verify properties that should hold for every file layout:
each directory total equals the sum of the files transitively below it, and
the root total equals the sum of all file sizes.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from dirstat.core.aggregator import ROOT_KEY, SizeAggregator, ancestor_chain
from dirstat.core.classifier import classify
from dirstat.core.scanner import scan_paths
from dirstat.core.traversal import traverse

_NAMES = st.text(alphabet="abcdef", min_size=1, max_size=3)


@st.composite
def file_layouts(draw: st.DrawFn) -> dict[tuple[str, ...], int]:
    """Relative file paths (as component tuples) mapped to sizes."""
    paths = draw(
        st.lists(
            st.lists(_NAMES, min_size=1, max_size=4).map(tuple),
            min_size=0,
            max_size=12,
            unique=True,
        )
    )
    # A path cannot be both a file and a parent directory of another file
    files = [
        path
        for path in paths
        if not any(other[: len(path)] == path and other != path for other in paths)
        and not any(path[: len(other)] == other and other != path for other in paths)
    ]
    sizes = draw(st.lists(st.integers(min_value=0, max_value=10_000), min_size=len(files), max_size=len(files)))
    return dict(zip(files, sizes, strict=True))


def _expected_totals(layout: dict[tuple[str, ...], int]) -> dict[str, int]:
    expected: dict[str, int] = {}
    for parts, size in layout.items():
        key = ROOT_KEY
        expected[key] = expected.get(key, 0) + size
        for part in parts[:-1]:
            key = os.path.join(key, part)
            expected[key] = expected.get(key, 0) + size
    return expected


def _materialize(root: Path, layout: dict[tuple[str, ...], int]) -> None:
    for parts, size in layout.items():
        path = root.joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        _ = path.write_bytes(b"\0" * size)


class TestAggregationInvariants:
    """Property-based tests for SizeAggregator."""

    @given(file_layouts())
    def test_directory_totals_are_transitive_sums(self, layout: dict[tuple[str, ...], int]) -> None:
        """Property: every key equals the sum of files below that directory."""
        aggregator = SizeAggregator()
        root = Path("/r")
        for parts, size in layout.items():
            aggregator.accumulate(root, root.joinpath(*parts), size)

        assert aggregator.totals == _expected_totals(layout)

    @given(file_layouts())
    def test_root_total_is_sum_of_sizes(self, layout: dict[tuple[str, ...], int]) -> None:
        """Property: the root key holds the sum of all file sizes."""
        aggregator = SizeAggregator()
        root = Path("/r")
        for parts, size in layout.items():
            aggregator.accumulate(root, root.joinpath(*parts), size)

        assert aggregator.total_for(ROOT_KEY) == sum(layout.values())

    @given(st.lists(_NAMES, min_size=1, max_size=6))
    def test_chain_length_matches_depth(self, parts: list[str]) -> None:
        """Property: a file n levels deep has n ancestor keys."""
        chain = ancestor_chain("/r", os.path.join("/r", *parts))

        assert len(chain) == len(parts)
        assert chain[0] == ROOT_KEY
        assert all(later.startswith(earlier) for earlier, later in zip(chain, chain[1:]))


class TestTraversalInvariants:
    """Property-based tests over real directory trees."""

    @settings(max_examples=25, deadline=None)
    @given(file_layouts())
    def test_streaming_scan_matches_layout(self, layout: dict[tuple[str, ...], int]) -> None:
        """Property: a streaming scan reproduces the expected aggregate map."""
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _materialize(root, layout)

            report = asyncio.run(scan_paths([root]))

        assert report.totals[root] == _expected_totals(layout)
        assert report.files == len(layout)
        assert report.errors == ()

    @settings(max_examples=25, deadline=None)
    @given(file_layouts())
    def test_collected_tree_has_one_node_per_entry(self, layout: dict[tuple[str, ...], int]) -> None:
        """Property: N files and M directories give N+M entries, classified once each."""
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _materialize(root, layout)
            directories = {
                root.joinpath(*parts[:depth]) for parts in layout for depth in range(1, len(parts))
            }

            node = asyncio.run(traverse(root))

            entries = list(node.iter_entries())
            assert len(entries) == len(layout) + len(directories)
            assert all(classify(entry.metadata) == entry.traits for entry in entries)
