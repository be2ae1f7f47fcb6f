"""Cooperative cancellation and result limits for traversal runs.

A CancellationToken is passed into a traversal and checked at every suspension
point (before each directory listing and each stat). Cancelling never
interrupts I/O already in flight; it stops new work from being issued, so the
run drains and still reaches its terminal signal with a truncated result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TraversalLimits(BaseModel):
    """Caller-configurable limits that truncate a run instead of exiting.

    ``max_depth`` is measured from the traversal root: the root's immediate
    children are at depth 1. Directories at ``max_depth`` are still reported
    but not descended into.
    """

    max_depth: Annotated[
        int | None,
        Field(gt=0, description="Deepest directory level to descend into"),
    ] = None
    max_entries: Annotated[
        int | None,
        Field(gt=0, description="Stop issuing work after this many reported entries"),
    ] = None

    def allows_descent(self, depth: int) -> bool:
        """Whether a directory found at ``depth`` may be listed."""
        return self.max_depth is None or depth < self.max_depth

    def entries_exhausted(self, emitted: int) -> bool:
        return self.max_entries is not None and emitted >= self.max_entries


@dataclass(slots=True)
class CancellationToken:
    """Single-shot cancellation flag with a reason."""

    cancelled: bool = False
    reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation; only the first reason is kept."""
        if self.cancelled:
            return
        self.cancelled = True
        self.reason = reason
        logger.info("Traversal cancellation requested", extra={"reason": reason})
