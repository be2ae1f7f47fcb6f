"""Type definitions and protocols for dirstat.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from dirstat.types.aliases import (
    AggregateMap,
    EventHandler,
    SizeGroups,
)
from dirstat.types.models import (
    DirectoryNode,
    EntryTraits,
    FileEntry,
    PathDescription,
    ScanReport,
    Trait,
    VolumeStats,
)
from dirstat.types.protocols import (
    SizeSink,
    StatvfsFunction,
)

__all__ = [
    # Type aliases
    "AggregateMap",
    "EventHandler",
    "SizeGroups",
    # Data models
    "DirectoryNode",
    "EntryTraits",
    "FileEntry",
    "PathDescription",
    "ScanReport",
    "Trait",
    "VolumeStats",
    # Protocols
    "SizeSink",
    "StatvfsFunction",
]
