"""Roll per-file sizes up into cumulative totals per ancestor directory.

Keys are paths relative to the traversal root: ``.`` for the root itself,
then ``./a``, ``./a/b`` and so on. Every file adds its size to each directory
on the chain from the root down to its immediate parent, so each key ends up
holding the sum of all files transitively below that directory.
"""

from __future__ import annotations

import os
import threading
from collections import defaultdict
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from dirstat.types.aliases import AggregateMap, SizeGroups
from dirstat.types.models import FileEntry

ROOT_KEY = "."

# st_blocks is counted in 512-byte units on POSIX systems
_STAT_BLOCK_SIZE = 512


class SizeMode(str, Enum):
    """Enumeration for size calculation modes."""

    APPARENT = "apparent"  # Apparent size (file content size)
    DISK_USAGE = "disk_usage"  # Actual disk usage (allocated blocks)


def entry_size(entry: FileEntry, mode: SizeMode = SizeMode.APPARENT) -> int:
    """Size of an entry in bytes under the given mode."""
    if mode == SizeMode.DISK_USAGE:
        return getattr(entry.metadata, "st_blocks", 0) * _STAT_BLOCK_SIZE
    return entry.metadata.st_size


def ancestor_chain(root: Path | str, file_path: Path | str) -> list[str]:
    """Keys of the directories between ``root`` and the parent of ``file_path``.

    Args:
        root: Traversal root
        file_path: File located at or below ``root``

    Returns:
        Ordered keys from the root (``.``) down to the immediate parent

    Raises:
        ValueError: If ``file_path`` lies outside ``root``

    Examples:
        >>> ancestor_chain("/tmp/r", "/tmp/r/a.txt")
        ['.']
        >>> ancestor_chain("/tmp/r", "/tmp/r/sub/deeper/b.txt")
        ['.', './sub', './sub/deeper']
        >>> ancestor_chain("/tmp/r", "/tmp/r")
        ['.']
    """
    relative = os.path.relpath(os.path.abspath(file_path), os.path.abspath(root))
    parts = [part for part in Path(relative).parts if part not in ("", os.curdir)]
    if parts and parts[0] == os.pardir:
        msg = f"{file_path} is not located under {root}"
        raise ValueError(msg)

    chain = [ROOT_KEY]
    current = ROOT_KEY
    for part in parts[:-1]:
        current = os.path.join(current, part)
        chain.append(current)
    return chain


class SizeAggregator:
    """Accumulates file sizes per ancestor directory for one traversal.

    Safe under interleaved calls: updates happen under a lock, so concurrent
    callers on worker threads cannot lose updates either.
    """

    def __init__(
        self,
        *,
        mode: SizeMode = SizeMode.APPARENT,
        track_size_groups: bool = False,
    ) -> None:
        """Initialize the aggregator.

        Args:
            mode: How entry sizes are measured by ``add_entry``
            track_size_groups: Also record file paths grouped by size
        """
        self.mode: SizeMode = mode
        self.track_size_groups: bool = track_size_groups

        self._totals: AggregateMap = {}
        self._groups: defaultdict[int, list[Path]] = defaultdict(list)
        self._files: int = 0
        self._lock: threading.Lock = threading.Lock()

    def accumulate(self, root: Path, file_path: Path, size: int) -> None:
        """Add ``size`` to every ancestor of ``file_path`` under ``root``."""
        if size < 0:
            msg = "size must be non-negative"
            raise ValueError(msg)

        chain = ancestor_chain(root, file_path)
        with self._lock:
            for key in chain:
                self._totals.setdefault(key, 0)
                self._totals[key] += size
            self._files += 1
            if self.track_size_groups:
                self._groups[size].append(Path(file_path))

    def add_entry(self, entry: FileEntry) -> bool:
        """Accumulate a traversal entry if it is a regular file.

        Returns:
            True if the entry was counted
        """
        if not entry.traits.file:
            return False
        self.accumulate(entry.root, entry.path, entry_size(entry, self.mode))
        return True

    @property
    def totals(self) -> AggregateMap:
        """Snapshot of the aggregate map."""
        with self._lock:
            return dict(self._totals)

    @property
    def files_counted(self) -> int:
        return self._files

    def total_for(self, key: str = ROOT_KEY) -> int:
        with self._lock:
            return self._totals.get(key, 0)

    def size_groups(self) -> SizeGroups:
        """Tracked files grouped by size, smallest size first."""
        with self._lock:
            return {size: sorted(self._groups[size]) for size in sorted(self._groups)}

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()
            self._groups.clear()
            self._files = 0


def group_by_size(
    entries: Iterable[FileEntry],
    *,
    mode: SizeMode = SizeMode.APPARENT,
) -> SizeGroups:
    """Group regular files by size, smallest first; paths sorted within a group.

    Files sharing a size are candidate duplicates.
    """
    groups: defaultdict[int, list[Path]] = defaultdict(list)
    for entry in entries:
        if entry.traits.file:
            groups[entry_size(entry, mode)].append(entry.path)
    return {size: sorted(groups[size]) for size in sorted(groups)}
