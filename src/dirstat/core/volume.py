"""Volume stat probe for the filesystem containing a path.

Wraps the raw ``statvfs`` lookup and converts its block counts into byte
totals. Failures are raised as ProbeError and never retried. The mount point
and device backing the path are resolved from ``psutil.disk_partitions``.
"""

import asyncio
import logging
import os
from pathlib import Path

import psutil

from dirstat.core.exceptions import ProbeError
from dirstat.types.models import VolumeStats
from dirstat.types.protocols import StatvfsFunction

logger = logging.getLogger(__name__)


def _statvfs(path: str, /) -> os.statvfs_result:
    return os.statvfs(path)


def find_mount(path: Path | str) -> tuple[Path | None, str | None]:
    """Find the mount point and device of the partition containing ``path``.

    The partition with the longest mount point that is ``path`` or one of its
    parents wins.

    Returns:
        (mountpoint, device), or (None, None) if no partition matches
    """
    target = Path(os.path.abspath(path))
    try:
        # psutil.disk_partitions returns list[sdiskpart] but type checker sees it as partially unknown
        partitions = psutil.disk_partitions(all=True)  # pyright: ignore[reportUnknownMemberType]
    except (OSError, RuntimeError) as exc:
        logger.debug(
            "Cannot enumerate partitions",
            extra={"path": str(target), "error": str(exc)},
        )
        return None, None

    best_mount: Path | None = None
    best_device: str | None = None
    for partition in partitions:
        mount = Path(partition.mountpoint)
        if mount != target and mount not in target.parents:
            continue
        if best_mount is None or len(mount.parts) > len(best_mount.parts):
            best_mount = mount
            best_device = partition.device or None

    return best_mount, best_device


def probe_volume(
    path: Path | str,
    *,
    statvfs: StatvfsFunction | None = None,
    resolve_mount: bool = True,
) -> VolumeStats:
    """Return capacity metrics for the volume containing ``path``.

    Args:
        path: Any path on the volume of interest
        statvfs: Raw lookup to use (``os.statvfs`` if None)
        resolve_mount: Whether to look up the mount point and device

    Returns:
        VolumeStats with byte totals computed as
        total = f_blocks * f_frsize, free = f_bfree * f_bsize,
        available = f_bavail * f_bsize

    Raises:
        ProbeError: If the lookup fails
    """
    lookup = statvfs if statvfs is not None else _statvfs
    try:
        raw = lookup(os.fspath(path))
    except OSError as exc:
        raise ProbeError(path, exc) from exc

    mountpoint, device = find_mount(path) if resolve_mount else (None, None)

    stats = VolumeStats(
        path=Path(path),
        block_size=raw.f_bsize,
        fragment_size=raw.f_frsize,
        total_bytes=raw.f_blocks * raw.f_frsize,
        free_bytes=raw.f_bfree * raw.f_bsize,
        available_bytes=raw.f_bavail * raw.f_bsize,
        mountpoint=mountpoint,
        device=device,
    )
    logger.debug(
        "Volume probed",
        extra={
            "path": str(path),
            "total_bytes": stats.total_bytes,
            "available_bytes": stats.available_bytes,
            "mountpoint": str(mountpoint) if mountpoint else None,
        },
    )
    return stats


async def probe_volume_async(
    path: Path | str,
    *,
    statvfs: StatvfsFunction | None = None,
    resolve_mount: bool = True,
) -> VolumeStats:
    """Async wrapper running ``probe_volume`` in a worker thread."""
    return await asyncio.to_thread(
        probe_volume,
        path,
        statvfs=statvfs,
        resolve_mount=resolve_mount,
    )
