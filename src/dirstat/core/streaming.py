"""Streaming-mode traversal over an event channel.

``start_traversal`` lists one directory and stats its entries concurrently,
emitting a ``file`` event per successfully stat'd entry and a ``path`` event
per discovered subdirectory. Subdirectories are not recursed into directly:
the engine's own ``path`` subscriber re-submits each one as a fresh top-level
scan, so call-stack depth stays constant regardless of tree depth.

Completion is detected with an in-flight job counter. A job is acquired when a
directory scan or an entry stat is submitted and released when it finishes;
a ``path`` event acquires the child's job before the parent stat releases its
own. After each release the quiescence check is deferred to the next loop
tick with ``call_soon``, and ``end`` is emitted the first time the counter is
found at zero. A guard flag keeps ``end`` from firing twice.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Coroutine, Iterable
from pathlib import Path
from typing import Final

from dirstat.core.cancellation import CancellationToken, TraversalLimits
from dirstat.core.classifier import classify
from dirstat.core.events import EventChannel, EventKind
from dirstat.core.exceptions import ListError, StatError, TraversalError
from dirstat.core.traversal import list_directory, stat_entry
from dirstat.types.models import FileEntry

logger = logging.getLogger(__name__)

# Default delay before a discovered subdirectory is re-submitted (seconds)
DEFAULT_RESUBMIT_DELAY: Final[float] = 0.0


class TraversalEndedError(RuntimeError):
    """Raised when work is submitted to a traversal that already ended."""


class StreamingTraversal:
    """Event-emitting traversal of one or more roots.

    A single instance represents one run: once ``end`` has been emitted no
    further scans are accepted.
    """

    def __init__(
        self,
        channel: EventChannel | None = None,
        *,
        resubmit_delay: float = DEFAULT_RESUBMIT_DELAY,
        limits: TraversalLimits | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Initialize the traversal.

        Args:
            channel: Event channel to emit on (a private one if None)
            resubmit_delay: Seconds to wait before scanning a discovered
                subdirectory; a policy knob, not needed for correctness
            limits: Optional depth and entry-count limits
            token: Cancellation token checked at every suspension point
        """
        if resubmit_delay < 0:
            msg = "resubmit_delay must be non-negative"
            raise ValueError(msg)

        self.channel: EventChannel = channel if channel is not None else EventChannel()
        self.resubmit_delay: float = resubmit_delay
        self.limits: TraversalLimits = limits if limits is not None else TraversalLimits()
        self.token: CancellationToken = token if token is not None else CancellationToken()

        self._jobs: int = 0
        self._ended: bool = False
        self._emitted: int = 0
        self._depth_limited: bool = False
        self._tasks: set[asyncio.Task[None]] = set()

        _ = self.channel.on(EventKind.PATH, self._on_path)

    @property
    def jobs(self) -> int:
        """Number of in-flight directory scans and stats."""
        return self._jobs

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def entries_emitted(self) -> int:
        return self._emitted

    @property
    def truncated(self) -> bool:
        """Whether a limit or cancellation left part of the tree unvisited."""
        return self._depth_limited or self.token.cancelled

    def start_traversal(self, root: Path | str, path: Path | str | None = None) -> None:
        """Begin scanning ``path`` (default ``root``) without blocking.

        Must be called from within a running event loop.

        Raises:
            TraversalEndedError: If this run already emitted ``end``
        """
        if self._ended:
            msg = "Traversal already ended; create a new StreamingTraversal"
            raise TraversalEndedError(msg)

        root_path = Path(os.path.abspath(root))
        target = Path(os.path.abspath(path)) if path is not None else root_path
        self._acquire()
        self._spawn_acquired(self._scan(root_path, target))

    async def run(self, roots: Iterable[Path | str]) -> None:
        """Start every root and wait until ``end`` is emitted."""
        done = asyncio.Event()
        unsubscribe = self.channel.on(EventKind.END, done.set)
        try:
            started = 0
            for root in roots:
                self.start_traversal(root)
                started += 1
            if started == 0:
                self._finish()
            _ = await done.wait()
        finally:
            unsubscribe()

    def _acquire(self) -> None:
        self._jobs += 1

    def _release(self) -> None:
        self._jobs -= 1
        if self._jobs < 0:
            msg = "In-flight job counter dropped below zero"
            raise RuntimeError(msg)
        # Deferred so jobs spawned synchronously by the finishing one are counted
        asyncio.get_running_loop().call_soon(self._check_quiescence)

    def _check_quiescence(self) -> None:
        if self._jobs == 0 and not self._ended:
            self._finish()

    def _finish(self) -> None:
        self._ended = True
        logger.info(
            "Streaming traversal complete",
            extra={
                "entries": self._emitted,
                "truncated": self.truncated,
                "reason": self.token.reason,
            },
        )
        self.channel.emit(EventKind.END)

    def _spawn_acquired(self, coro: Coroutine[object, object, None]) -> None:
        """Schedule a coroutine whose job has already been acquired."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Traversal task failed unexpectedly", exc_info=exc)

    async def _scan(self, root: Path, path: Path) -> None:
        try:
            if self.token.cancelled:
                return

            try:
                names = await list_directory(path)
            except ListError as exc:
                self._emit_error(exc, path)
                return

            logger.debug(
                "Listed directory",
                extra={"path": str(path), "entries": len(names)},
            )
            for name in names:
                if self.token.cancelled:
                    break
                self._acquire()
                self._spawn_acquired(self._stat_child(root, path / name))
        finally:
            self._release()

    async def _stat_child(self, root: Path, path: Path) -> None:
        try:
            if self.token.cancelled:
                return

            try:
                metadata = await stat_entry(path)
            except StatError as exc:
                self._emit_error(exc, path)
                return

            if self.token.cancelled:
                return

            entry = FileEntry(path=path, root=root, metadata=metadata, traits=classify(metadata))
            self._emit_file(entry)

            if entry.traits.directory:
                if self.limits.allows_descent(_depth(root, path)):
                    self.channel.emit(EventKind.PATH, path, root)
                else:
                    self._depth_limited = True
        finally:
            self._release()

    def _emit_file(self, entry: FileEntry) -> None:
        self._emitted += 1
        self.channel.emit(EventKind.FILE, entry)
        if self.limits.entries_exhausted(self._emitted):
            self.token.cancel(f"entry limit of {self.limits.max_entries} reached")

    def _emit_error(self, error: TraversalError, path: Path) -> None:
        logger.warning("%s", error, extra={"path": str(path), "errno": error.errno})
        self.channel.emit(EventKind.ERROR, error, path)

    def _on_path(self, path: Path, root: Path) -> None:
        """Re-submit a discovered subdirectory as a new top-level scan."""
        if self._ended or self.token.cancelled:
            return

        if self.resubmit_delay <= 0:
            self.start_traversal(root, path)
            return

        # The pending re-submission holds a job so the run cannot end meanwhile
        self._acquire()
        loop = asyncio.get_running_loop()
        _ = loop.call_later(self.resubmit_delay, self._resubmit, root, path)

    def _resubmit(self, root: Path, path: Path) -> None:
        if self.token.cancelled:
            self._release()
            return
        self._spawn_acquired(self._scan(root, path))


def _depth(root: Path, path: Path) -> int:
    """Directory depth of ``path`` below ``root`` (root's children are 1)."""
    try:
        return len(path.relative_to(root).parts)
    except ValueError:
        return len(Path(os.path.relpath(path, root)).parts)
