"""Collecting-mode traversal producing a nested result tree.

Every directory listing and every lstat is offloaded with asyncio.to_thread,
so each one is a suspension point and sibling entries are stat'd (and, for
directories, recursed into) concurrently. The shape of the returned
DirectoryNode mirrors the directory tree.

Failures are scoped to where they happen:
- A directory that cannot be listed keeps its node with the ListError attached
  and no children; its siblings are unaffected. Only a failure to list the
  top-level path is raised to the caller.
- An entry that cannot be stat'd becomes a StatError child.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dirstat.core.cancellation import CancellationToken, TraversalLimits
from dirstat.core.classifier import classify
from dirstat.core.exceptions import ListError, StatError, TraversalError
from dirstat.types.models import DirectoryNode, FileEntry

logger = logging.getLogger(__name__)


async def list_directory(path: Path) -> list[str]:
    """List the entry names of a directory without blocking the event loop.

    Raises:
        ListError: If the directory cannot be read
    """
    try:
        return await asyncio.to_thread(os.listdir, path)
    except OSError as exc:
        raise ListError(path, exc) from exc


async def stat_entry(path: Path) -> os.stat_result:
    """lstat a single entry without blocking the event loop.

    Raises:
        StatError: If the entry disappeared or is inaccessible
    """
    try:
        return await asyncio.to_thread(os.lstat, path)
    except OSError as exc:
        raise StatError(path, exc) from exc


@dataclass(slots=True)
class _CollectState:
    """Per-invocation bookkeeping shared by all subtree coroutines."""

    token: CancellationToken
    limits: TraversalLimits
    entries: int = 0
    errors: list[TraversalError] = field(default_factory=list)

    def record_entry(self) -> None:
        self.entries += 1
        if self.limits.entries_exhausted(self.entries):
            self.token.cancel(f"entry limit of {self.limits.max_entries} reached")


async def traverse(
    root: Path | str,
    path: Path | str | None = None,
    *,
    token: CancellationToken | None = None,
    limits: TraversalLimits | None = None,
) -> DirectoryNode:
    """Recursively collect the tree below ``path``.

    Args:
        root: Traversal root every entry is attributed to
        path: Directory to list (defaults to ``root``)
        token: Cancellation token checked before each listing and stat
        limits: Optional depth and entry-count limits

    Returns:
        DirectoryNode for ``path`` with one child per entry

    Raises:
        ListError: If ``path`` itself cannot be listed
    """
    root_path = Path(os.path.abspath(root))
    start = Path(os.path.abspath(path)) if path is not None else root_path
    state = _CollectState(
        token=token if token is not None else CancellationToken(),
        limits=limits if limits is not None else TraversalLimits(),
    )

    logger.debug("Collecting tree", extra={"root": str(root_path), "path": str(start)})
    node = await _collect_directory(root_path, start, None, 0, state)

    logger.info(
        "Tree collection complete",
        extra={
            "root": str(root_path),
            "entries": state.entries,
            "errors": len(state.errors),
            "truncated": node.truncated or state.token.cancelled,
        },
    )
    return node


async def _collect_directory(
    root: Path,
    path: Path,
    entry: FileEntry | None,
    depth: int,
    state: _CollectState,
) -> DirectoryNode:
    if state.token.cancelled:
        return DirectoryNode(path=path, root=root, entry=entry, truncated=True)

    names = await list_directory(path)

    results = await asyncio.gather(
        *(_collect_child(root, path / name, depth + 1, state) for name in names)
    )

    children: dict[str, FileEntry | DirectoryNode | TraversalError] = {}
    for name, result in zip(names, results, strict=True):
        if result is not None:
            children[name] = result

    return DirectoryNode(
        path=path,
        root=root,
        entry=entry,
        children=children,
        truncated=len(children) < len(names),
    )


async def _collect_child(
    root: Path,
    path: Path,
    depth: int,
    state: _CollectState,
) -> FileEntry | DirectoryNode | TraversalError | None:
    """Resolve one entry; returns None if cancellation dropped it."""
    if state.token.cancelled:
        return None

    try:
        metadata = await stat_entry(path)
    except StatError as exc:
        logger.warning("Cannot stat entry: %s", exc, extra={"path": str(path)})
        state.errors.append(exc)
        return exc

    if state.token.cancelled:
        return None

    entry = FileEntry(path=path, root=root, metadata=metadata, traits=classify(metadata))
    state.record_entry()

    if not entry.traits.directory:
        return entry

    if not state.limits.allows_descent(depth):
        return DirectoryNode(path=path, root=root, entry=entry, truncated=True)

    try:
        return await _collect_directory(root, path, entry, depth, state)
    except ListError as exc:
        logger.warning("Cannot list directory: %s", exc, extra={"path": str(path)})
        state.errors.append(exc)
        return DirectoryNode(path=path, root=root, entry=entry, error=exc)
