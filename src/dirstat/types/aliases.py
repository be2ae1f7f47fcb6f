"""Type aliases using modern PEP 695 syntax."""

from collections.abc import Callable
from pathlib import Path

# Cumulative byte totals keyed by path relative to a traversal root
# ("." for the root itself, then "./a", "./a/b", ...)
type AggregateMap = dict[str, int]

# Files grouped by apparent size, ascending by size
type SizeGroups = dict[int, list[Path]]

# Event channel handlers receive the payload of the event they subscribed to
type EventHandler = Callable[..., None]
