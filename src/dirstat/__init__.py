"""dirstat - Per-directory size totals, file traits and volume capacity.

This package walks directory trees concurrently, classifies every entry,
aggregates regular-file sizes into each ancestor directory and reports the
capacity of the volumes the roots live on.
"""

from dirstat.__main__ import main

__all__ = ["main"]
