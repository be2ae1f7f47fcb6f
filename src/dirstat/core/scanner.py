"""Scan orchestration wiring traversal, aggregation and volume probing.

``scan_paths`` runs one streaming traversal over all roots and feeds every
``file`` event into a per-root SizeAggregator owned by that invocation, so
nothing accumulates across calls. ``collect_tree`` is the collecting-mode
counterpart and ``describe_paths`` reports stat and volume details for the
root arguments themselves.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path

from dirstat.core.aggregator import SizeAggregator
from dirstat.core.cancellation import CancellationToken
from dirstat.core.classifier import classify
from dirstat.core.config import ScanConfig
from dirstat.core.events import EventChannel, EventKind
from dirstat.core.exceptions import DirstatError, ListError, ProbeError, StatError, TraversalError
from dirstat.core.streaming import StreamingTraversal
from dirstat.core.traversal import stat_entry, traverse
from dirstat.core.volume import probe_volume_async
from dirstat.types.models import DirectoryNode, FileEntry, PathDescription, ScanReport
from dirstat.utils.logging import clear_scan_id, get_scan_id, set_scan_id

logger = logging.getLogger(__name__)


def _normalize_roots(roots: Iterable[Path | str]) -> tuple[Path, ...]:
    """Absolute roots in argument order, duplicates removed."""
    seen: dict[Path, None] = {}
    for root in roots:
        seen.setdefault(Path(os.path.abspath(root)), None)
    return tuple(seen)


async def scan_paths(
    roots: Iterable[Path | str],
    *,
    config: ScanConfig | None = None,
    token: CancellationToken | None = None,
    channel: EventChannel | None = None,
) -> ScanReport:
    """Traverse every root and aggregate file sizes per ancestor directory.

    Args:
        roots: Root directories to scan
        config: Traversal and aggregation settings
        token: Cancellation token shared with the traversal
        channel: Event channel to use, letting callers observe raw events

    Returns:
        ScanReport with one aggregate map per root and all reported errors
    """
    scan_config = config if config is not None else ScanConfig()
    root_paths = _normalize_roots(roots)
    event_channel = channel if channel is not None else EventChannel()

    owns_scan_id = get_scan_id() is None
    if owns_scan_id:
        set_scan_id(uuid.uuid4().hex[:12])

    aggregators = {
        root: SizeAggregator(
            mode=scan_config.size_mode,
            track_size_groups=scan_config.track_size_groups,
        )
        for root in root_paths
    }
    errors: list[TraversalError] = []
    counts = {"entries": 0, "files": 0, "directories": 0}

    def on_file(entry: FileEntry) -> None:
        counts["entries"] += 1
        if entry.traits.directory:
            counts["directories"] += 1
        if entry.traits.file:
            counts["files"] += 1
        _ = aggregators[entry.root].add_entry(entry)

    def on_error(error: TraversalError, path: Path) -> None:  # pyright: ignore[reportUnusedParameter]  # channel payload shape
        errors.append(error)

    _ = event_channel.on(EventKind.FILE, on_file)
    _ = event_channel.on(EventKind.ERROR, on_error)

    engine = StreamingTraversal(
        event_channel,
        resubmit_delay=scan_config.resubmit_delay,
        limits=scan_config.limits(),
        token=token,
    )

    logger.info(
        "Starting scan",
        extra={"roots": [str(root) for root in root_paths]},
    )
    try:
        await engine.run(root_paths)
    finally:
        event_channel.off(EventKind.FILE, on_file)
        event_channel.off(EventKind.ERROR, on_error)
        if owns_scan_id:
            clear_scan_id()

    size_groups: dict[int, list[Path]] = {}
    for aggregator in aggregators.values():
        for size, paths in aggregator.size_groups().items():
            size_groups.setdefault(size, []).extend(paths)

    report = ScanReport(
        roots=root_paths,
        totals={root: aggregator.totals for root, aggregator in aggregators.items()},
        files=counts["files"],
        directories=counts["directories"],
        entries=counts["entries"],
        errors=tuple(errors),
        truncated=engine.truncated,
        truncation_reason=engine.token.reason,
        size_groups={size: tuple(sorted(size_groups[size])) for size in sorted(size_groups)},
    )

    logger.info(
        "Scan complete",
        extra={
            "files": report.files,
            "directories": report.directories,
            "errors": len(report.errors),
            "total_bytes": report.total_bytes,
            "truncated": report.truncated,
        },
    )
    return report


def failed_roots(report: ScanReport) -> list[ListError]:
    """Listing errors raised by the root arguments themselves."""
    return [
        error
        for error in report.errors
        if isinstance(error, ListError) and error.path in report.roots
    ]


async def collect_tree(
    root: Path | str,
    *,
    config: ScanConfig | None = None,
    token: CancellationToken | None = None,
) -> DirectoryNode:
    """Collect the full tree below ``root``.

    Raises:
        ListError: If ``root`` itself cannot be listed
    """
    scan_config = config if config is not None else ScanConfig()
    return await traverse(root, token=token, limits=scan_config.limits())


async def describe_path(path: Path | str) -> PathDescription:
    """Stat a path and probe its volume; failures are captured, not raised."""
    target = Path(path)
    errors: list[DirstatError] = []

    volume = None
    try:
        volume = await probe_volume_async(target)
    except ProbeError as exc:
        logger.warning("%s", exc, extra={"path": str(target)})
        errors.append(exc)

    metadata = None
    try:
        metadata = await stat_entry(target)
    except StatError as exc:
        logger.warning("%s", exc, extra={"path": str(target)})
        errors.append(exc)

    return PathDescription(
        path=target,
        metadata=metadata,
        traits=classify(metadata) if metadata is not None else None,
        volume=volume,
        errors=tuple(errors),
    )


async def describe_paths(paths: Sequence[Path | str]) -> list[PathDescription]:
    """Describe every path concurrently, preserving argument order."""
    return list(await asyncio.gather(*(describe_path(path) for path in paths)))
