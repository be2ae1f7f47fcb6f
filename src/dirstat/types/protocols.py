"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols for the collaborators the
core consumes without owning them.
"""

import os
from pathlib import Path
from typing import Protocol, runtime_checkable


class StatvfsFunction(Protocol):
    """Raw volume statistics lookup (``os.statvfs`` compatible)."""

    def __call__(self, path: str, /) -> os.statvfs_result:
        """Return filesystem statistics for the volume containing ``path``.

        Raises:
            OSError: If the lookup fails
        """
        ...


@runtime_checkable
class SizeSink(Protocol):
    """Consumer of per-file sizes, implemented by the aggregator."""

    def accumulate(self, root: Path, file_path: Path, size: int) -> None:
        """Add ``size`` to every ancestor of ``file_path`` under ``root``."""
        ...
