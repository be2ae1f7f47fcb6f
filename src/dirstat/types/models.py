"""Data models for dirstat.

This module defines the immutable dataclasses passed between the traversal
engine, the aggregator and the reporter.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dirstat.core.exceptions import DirstatError, TraversalError


class Trait(str, Enum):
    """Filesystem entry type traits."""

    FILE = "File"
    DIRECTORY = "Directory"
    BLOCK_DEVICE = "BlockDevice"
    CHARACTER_DEVICE = "CharacterDevice"
    SYMBOLIC_LINK = "SymbolicLink"
    FIFO = "FIFO"
    SOCKET = "Socket"


@dataclass(slots=True, frozen=True)
class EntryTraits:
    """Boolean type classification of a single filesystem entry.

    The seven flags are evaluated independently. For a real stat result at
    most one of them is true, but nothing here enforces that.
    """

    file: bool = False
    directory: bool = False
    block_device: bool = False
    character_device: bool = False
    symbolic_link: bool = False
    fifo: bool = False
    socket: bool = False

    def as_dict(self) -> dict[str, bool]:
        """Return the traits keyed by their display names.

        Examples:
            >>> EntryTraits(file=True).as_dict()["File"]
            True
        """
        return {
            trait.value: bool(getattr(self, field_.name))
            for trait, field_ in zip(Trait, fields(self), strict=True)
        }

    def as_set(self) -> frozenset[Trait]:
        """Return the set of traits that are true."""
        return frozenset(
            trait
            for trait, field_ in zip(Trait, fields(self), strict=True)
            if getattr(self, field_.name)
        )


@dataclass(slots=True, frozen=True)
class FileEntry:
    """A successfully stat'd filesystem entry.

    Created by the traversal engine once lstat succeeds; never mutated.
    """

    path: Path
    root: Path
    metadata: os.stat_result
    traits: EntryTraits

    @property
    def size(self) -> int:
        """Apparent size in bytes."""
        return self.metadata.st_size

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(slots=True, frozen=True)
class DirectoryNode:
    """Result tree of a collecting-mode traversal.

    Children are keyed by entry name. A regular file (or any non-directory)
    maps to its FileEntry, a subdirectory to a nested DirectoryNode, and an
    entry that failed to stat to the StatError describing the failure. A
    subdirectory that was stat'd but could not be listed keeps its node, with
    the ListError in ``error`` and no children.

    ``truncated`` is set when a depth limit or cancellation stopped the
    listing of this directory short.
    """

    path: Path
    root: Path
    entry: FileEntry | None
    children: Mapping[str, FileEntry | DirectoryNode | TraversalError] = field(
        default_factory=dict
    )
    error: TraversalError | None = None
    truncated: bool = False

    def iter_entries(self) -> Iterator[FileEntry]:
        """Yield every entry below this node, directories included."""
        for child in self.children.values():
            if isinstance(child, DirectoryNode):
                if child.entry is not None:
                    yield child.entry
                yield from child.iter_entries()
            elif isinstance(child, FileEntry):
                yield child

    def iter_errors(self) -> Iterator[TraversalError]:
        """Yield every error recorded below this node."""
        for child in self.children.values():
            if isinstance(child, DirectoryNode):
                if child.error is not None:
                    yield child.error
                yield from child.iter_errors()
            elif not isinstance(child, FileEntry):
                yield child

    def count(self) -> int:
        """Number of entries below this node (files plus directories)."""
        return sum(1 for _ in self.iter_entries())


@dataclass(slots=True, frozen=True)
class VolumeStats:
    """Capacity metrics for the filesystem containing a path."""

    path: Path
    block_size: int
    fragment_size: int
    total_bytes: int
    free_bytes: int
    available_bytes: int
    mountpoint: Path | None = None
    device: str | None = None

    @property
    def used_bytes(self) -> int:
        return max(self.total_bytes - self.free_bytes, 0)

    def blocks(self, size: int) -> int:
        """Number of blocks a file of ``size`` bytes is charged for.

        Examples:
            >>> stats = VolumeStats(Path("/"), 4096, 4096, 0, 0, 0)
            >>> stats.blocks(0), stats.blocks(4095), stats.blocks(4096)
            (1, 1, 2)
        """
        if size < 0:
            msg = "size must be non-negative"
            raise ValueError(msg)
        return 1 + size // self.block_size

    def effective_size(self, size: int) -> int:
        """Bytes a file of ``size`` bytes occupies on this volume."""
        return self.block_size * self.blocks(size)


@dataclass(slots=True, frozen=True)
class PathDescription:
    """Stat and volume information for a single root argument."""

    path: Path
    metadata: os.stat_result | None
    traits: EntryTraits | None
    volume: VolumeStats | None
    errors: tuple[DirstatError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(slots=True, frozen=True)
class ScanReport:
    """Outcome of a streaming scan over one or more roots.

    ``totals`` holds one aggregate map per root, keyed relative to that root
    (``.``, ``./a``, ``./a/b``...).
    """

    roots: tuple[Path, ...]
    totals: Mapping[Path, Mapping[str, int]]
    files: int
    directories: int
    entries: int
    errors: tuple[TraversalError, ...] = ()
    truncated: bool = False
    truncation_reason: str | None = None
    size_groups: Mapping[int, tuple[Path, ...]] = field(default_factory=dict)

    @property
    def total_bytes(self) -> int:
        """Sum of the root totals across all roots."""
        return sum(mapping.get(".", 0) for mapping in self.totals.values())

    def combined_totals(self) -> dict[str, int]:
        """Merge the per-root maps into a single map, summing shared keys."""
        combined: dict[str, int] = {}
        for mapping in self.totals.values():
            for key, value in mapping.items():
                combined[key] = combined.get(key, 0) + value
        return combined
