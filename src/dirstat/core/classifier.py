"""Entry classification from stat metadata.

Pure functions deriving the type traits of a filesystem entry from the mode
bits of its stat result. Classification never raises: metadata whose mode
cannot be read yields all-false traits.
"""

import stat
from collections.abc import Callable
from typing import Final, Protocol

from dirstat.types.models import EntryTraits


class HasMode(Protocol):
    """Anything exposing ``st_mode`` (``os.stat_result``, ``os.DirEntry.stat()``...)."""

    @property
    def st_mode(self) -> int: ...


# Trait field name -> stat module predicate on st_mode
_TRAIT_PREDICATES: Final[dict[str, Callable[[int], bool]]] = {
    "file": stat.S_ISREG,
    "directory": stat.S_ISDIR,
    "block_device": stat.S_ISBLK,
    "character_device": stat.S_ISCHR,
    "symbolic_link": stat.S_ISLNK,
    "fifo": stat.S_ISFIFO,
    "socket": stat.S_ISSOCK,
}


def _evaluate(predicate: Callable[[int], bool], mode: int) -> bool:
    try:
        return bool(predicate(mode))
    except (TypeError, ValueError, OverflowError):
        return False


def classify(metadata: HasMode) -> EntryTraits:
    """Derive the type traits of an entry from its metadata.

    Args:
        metadata: Stat result of the entry (lstat, so links are not followed)

    Returns:
        EntryTraits with each of the seven traits evaluated independently

    Examples:
        >>> import os
        >>> classify(os.lstat(".")).directory
        True
    """
    mode = getattr(metadata, "st_mode", None)
    if not isinstance(mode, int):
        return EntryTraits()

    return EntryTraits(
        **{name: _evaluate(predicate, mode) for name, predicate in _TRAIT_PREDICATES.items()}
    )
