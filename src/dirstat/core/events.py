"""Event channel for streaming traversal.

Subscribers register per event kind and are invoked synchronously, in
registration order, on the thread that emits (the event loop thread during a
traversal). A failing handler is logged and counted; it never prevents the
remaining handlers from running or stops the traversal.

Payloads by kind:
- ``file``: (entry: FileEntry)
- ``path``: (directory: Path, root: Path)
- ``error``: (error: TraversalError, path: Path)
- ``end``: ()
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum

from dirstat.types.aliases import EventHandler

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Kinds of events emitted by a streaming traversal."""

    FILE = "file"
    PATH = "path"
    ERROR = "error"
    END = "end"


class EventChannelError(Exception):
    """Raised for invalid subscriptions."""

    def __init__(self, message: str, kind: str | None = None) -> None:
        """Initialize subscription error.

        Args:
            message: Error message
            kind: Event kind related to the error
        """
        super().__init__(message)
        self.kind: str | None = kind


class EventChannel:
    """Synchronous publish-subscribe channel keyed by event kind."""

    def __init__(self) -> None:
        self._handlers: defaultdict[EventKind, list[EventHandler]] = defaultdict(list)
        self._stats: dict[str, int] = {
            "events_emitted": 0,
            "handler_failures": 0,
        }
        self._counts: defaultdict[EventKind, int] = defaultdict(int)

    def on(self, kind: EventKind | str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe ``handler`` to events of ``kind``.

        Args:
            kind: Event kind (enum member or its string value)
            handler: Callable receiving the event payload

        Returns:
            Callable that removes the subscription

        Raises:
            EventChannelError: If ``kind`` is unknown or ``handler`` is not callable
        """
        event_kind = self._coerce_kind(kind)
        if not callable(handler):
            msg = f"Handler for '{event_kind.value}' events must be callable"
            raise EventChannelError(msg, kind=event_kind.value)

        self._handlers[event_kind].append(handler)
        logger.debug(
            "Registered handler for '%s' events",
            event_kind.value,
            extra={"kind": event_kind.value},
        )

        def unsubscribe() -> None:
            self.off(event_kind, handler)

        return unsubscribe

    def off(self, kind: EventKind | str, handler: EventHandler) -> None:
        """Remove a subscription; unknown handlers are ignored."""
        event_kind = self._coerce_kind(kind)
        handlers = self._handlers[event_kind]
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, kind: EventKind | str, *payload: object) -> None:
        """Deliver an event to every handler subscribed to its kind."""
        event_kind = self._coerce_kind(kind)
        self._stats["events_emitted"] += 1
        self._counts[event_kind] += 1

        # Copy so handlers may unsubscribe while being dispatched
        for handler in list(self._handlers[event_kind]):
            try:
                handler(*payload)
            except Exception as e:
                self._stats["handler_failures"] += 1
                logger.error(
                    f"Handler failed for '{event_kind.value}' event: {e}",
                    exc_info=True,
                    extra={"kind": event_kind.value, "error": str(e)},
                )

    def handler_count(self, kind: EventKind | str) -> int:
        return len(self._handlers[self._coerce_kind(kind)])

    def count(self, kind: EventKind | str) -> int:
        """Number of events of ``kind`` emitted so far."""
        return self._counts[self._coerce_kind(kind)]

    def get_stats(self) -> dict[str, int]:
        """Get channel statistics.

        Returns:
            Dictionary of statistics
        """
        return self._stats.copy()

    @staticmethod
    def _coerce_kind(kind: EventKind | str) -> EventKind:
        try:
            return EventKind(kind)
        except ValueError as e:
            msg = f"Unknown event kind: {kind!r}"
            raise EventChannelError(msg, kind=str(kind)) from e
