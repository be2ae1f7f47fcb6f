"""Error taxonomy for traversal and volume probing.

Listing and stat failures are scoped: a ListError covers the subtree rooted at
the directory that could not be read, a StatError covers a single entry. Both
are reported to the caller instead of aborting the run. ProbeError is surfaced
as-is by the volume probe and never retried.
"""

from __future__ import annotations

from pathlib import Path


class DirstatError(Exception):
    """Base exception for all dirstat errors."""


class TraversalError(DirstatError):
    """Base exception for failures tied to a filesystem path."""

    operation: str = "access"

    def __init__(self, path: Path | str, cause: BaseException | None = None) -> None:
        """Initialize TraversalError.

        Args:
            path: Path whose operation failed
            cause: Underlying exception (usually an OSError)
        """
        self.path: Path = Path(path)
        self.cause: BaseException | None = cause
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if self.cause is None:
            return f"cannot {self.operation} '{self.path}'"
        reason = getattr(self.cause, "strerror", None) or str(self.cause)
        return f"cannot {self.operation} '{self.path}': {reason}"

    @property
    def errno(self) -> int | None:
        """Errno of the underlying OSError, if any."""
        if isinstance(self.cause, OSError):
            return self.cause.errno
        return None


class ListError(TraversalError):
    """A directory could not be read (permissions, removed, not a directory)."""

    operation = "list directory"


class StatError(TraversalError):
    """An individual entry could not be stat'd."""

    operation = "stat"


class ProbeError(TraversalError):
    """The volume stat probe failed for a path."""

    operation = "probe volume of"
