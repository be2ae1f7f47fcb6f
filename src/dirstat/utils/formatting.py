"""Pure formatting utilities for human-readable output.

This module renders aggregate maps, result trees, volume statistics and
scan reports. All functions are pure with no side effects; callers decide
where the text goes.
"""

import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from dirstat.core.exceptions import DirstatError, ListError
from dirstat.types.models import (
    DirectoryNode,
    FileEntry,
    PathDescription,
    ScanReport,
    VolumeStats,
)

# IEC units (1024-based), matching du -h and df -h
_IEC_UNITS = ("KiB", "MiB", "GiB", "TiB", "PiB", "EiB")
_IEC_BASE = 1024


def format_size(bytes: int, *, precision: int = 1) -> str:
    """Convert bytes to a human-readable IEC size.

    Args:
        bytes: Number of bytes to format (must be non-negative)
        precision: Decimal places for values of 1 KiB and above

    Returns:
        Human-readable size

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.5 KiB'
        >>> format_size(10 * 1024**3)
        '10.0 GiB'
        >>> format_size(1048575)
        '1.0 MiB'
    """
    if bytes < 0:
        msg = "bytes must be non-negative"
        raise ValueError(msg)

    if bytes < _IEC_BASE:
        return f"{bytes} B"

    value = float(bytes)
    unit = _IEC_UNITS[0]
    for unit in _IEC_UNITS:
        value /= _IEC_BASE
        # Compare after rounding so 1023.99 KiB is shown as 1.0 MiB
        if round(value, precision) < _IEC_BASE:
            break

    return f"{value:.{precision}f} {unit}"


def display(text: str | os.PathLike[str]) -> str:
    r"""Make a path or message safe to write to a UTF-8 stream.

    Undecodable bytes in file names arrive as lone surrogates; they are shown
    as backslash escapes.

    Examples:
        >>> display("d\udcff")
        'd\\xff'
    """
    value = os.fspath(text)
    try:
        raw = value.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        return value.encode("utf-8", "backslashreplace").decode("utf-8")
    return raw.decode("utf-8", "backslashreplace")


def _size(value: int, human: bool) -> str:
    return format_size(value) if human else str(value)


def render_aggregate(totals: Mapping[str, int], *, human: bool = True) -> str:
    """Render an aggregate map as ``size<TAB>key`` lines sorted by key.

    Examples:
        >>> print(render_aggregate({".": 30, "./sub": 20}, human=False))
        30	.
        20	./sub
    """
    return "\n".join(f"{_size(totals[key], human)}\t{display(key)}" for key in sorted(totals))


def render_tree(node: DirectoryNode, *, human: bool = True, indent: str = "  ") -> str:
    """Render a collected tree, children sorted by name."""
    lines = [str(node.path) + ("/" if node.error is None else f"/  [{node.error}]")]
    _render_children(node, lines, depth=1, human=human, indent=indent)
    return display("\n".join(lines))


def _render_children(
    node: DirectoryNode,
    lines: list[str],
    *,
    depth: int,
    human: bool,
    indent: str,
) -> None:
    prefix = indent * depth
    for name in sorted(node.children):
        child = node.children[name]
        if isinstance(child, DirectoryNode):
            suffix = f"  [{child.error}]" if child.error is not None else ""
            if child.truncated:
                suffix += "  [truncated]"
            lines.append(f"{prefix}{name}/{suffix}")
            _render_children(child, lines, depth=depth + 1, human=human, indent=indent)
        elif isinstance(child, FileEntry):
            lines.append(f"{prefix}{name}  {_size(child.size, human)}")
        else:
            lines.append(f"{prefix}{name}  [{child}]")


def render_volume(stats: VolumeStats, *, human: bool = True) -> str:
    """Render volume capacity in a df-like single line."""
    mount = f" on {stats.mountpoint}" if stats.mountpoint is not None else ""
    device = f" ({stats.device})" if stats.device else ""
    return display(
        f"{stats.path}{mount}{device}: "
        f"size {_size(stats.total_bytes, human)}, "
        f"used {_size(stats.used_bytes, human)}, "
        f"free {_size(stats.free_bytes, human)}, "
        f"available {_size(stats.available_bytes, human)}, "
        f"block {_size(stats.block_size, human)}"
    )


def render_description(description: PathDescription, *, human: bool = True) -> str:
    lines: list[str] = []
    if description.volume is not None:
        lines.append(render_volume(description.volume, human=human))
    if description.metadata is not None and description.traits is not None:
        kinds = ", ".join(sorted(trait.value for trait in description.traits.as_set())) or "unknown"
        lines.append(f"{description.path}: {kinds}, {_size(description.metadata.st_size, human)}")
    lines.extend(f"{description.path}: error: {error}" for error in description.errors)
    return display("\n".join(lines))


def render_errors(errors: Sequence[DirstatError]) -> str:
    return display("\n".join(f"error: {error}" for error in errors))


def render_size_groups(groups: Mapping[int, Sequence[Path]], *, human: bool = True) -> str:
    """Render sizes shared by more than one file, smallest first."""
    lines: list[str] = []
    for size in sorted(groups):
        paths = groups[size]
        if len(paths) < 2:
            continue
        lines.append(f"{_size(size, human)} ({len(paths)} files)")
        lines.extend(f"  {path}" for path in paths)
    return display("\n".join(lines))


def render_report(report: ScanReport, *, human: bool = True, show_errors: bool = True) -> str:
    """Render a scan report as plain text."""
    failures = {
        error.path: error
        for error in report.errors
        if isinstance(error, ListError) and error.path in report.roots
    }
    sections: list[str] = []
    for root in report.roots:
        totals = report.totals.get(root, {})
        if root in failures:
            body = f"  [{failures[root]}]"
        elif totals:
            body = render_aggregate(totals, human=human)
        else:
            body = f"{_size(0, human)}\t."
        sections.append(display(f"{root}\n{body}"))

    summary = (
        f"{report.files} files, {report.directories} directories, "
        f"{_size(report.total_bytes, human)} total"
    )
    if report.truncated:
        reason = f": {report.truncation_reason}" if report.truncation_reason else ""
        summary += f" (truncated{reason})"
    sections.append(summary)

    if show_errors and report.errors:
        sections.append(render_errors(report.errors))

    return "\n\n".join(sections)


def report_to_dict(report: ScanReport) -> dict[str, object]:
    """JSON-compatible representation of a scan report."""
    return {
        "roots": [str(root) for root in report.roots],
        "totals": {str(root): dict(report.totals.get(root, {})) for root in report.roots},
        "files": report.files,
        "directories": report.directories,
        "entries": report.entries,
        "total_bytes": report.total_bytes,
        "truncated": report.truncated,
        "truncation_reason": report.truncation_reason,
        "errors": [{"path": str(error.path), "message": str(error)} for error in report.errors],
        "size_groups": {
            str(size): [str(path) for path in paths] for size, paths in report.size_groups.items()
        },
    }


def tree_to_dict(node: DirectoryNode) -> dict[str, object]:
    """JSON-compatible nested representation of a collected tree."""
    children: dict[str, object] = {}
    for name, child in node.children.items():
        if isinstance(child, DirectoryNode):
            children[name] = tree_to_dict(child)
        elif isinstance(child, FileEntry):
            children[name] = {"size": child.size, "traits": child.traits.as_dict()}
        else:
            children[name] = {"error": str(child)}

    result: dict[str, object] = {"path": str(node.path), "children": children}
    if node.entry is not None:
        result["traits"] = node.entry.traits.as_dict()
    if node.error is not None:
        result["error"] = str(node.error)
    if node.truncated:
        result["truncated"] = True
    return result


def description_to_dict(description: PathDescription) -> dict[str, object]:
    volume = description.volume
    return {
        "path": str(description.path),
        "size": description.metadata.st_size if description.metadata is not None else None,
        "traits": description.traits.as_dict() if description.traits is not None else None,
        "volume": None
        if volume is None
        else {
            "block_size": volume.block_size,
            "fragment_size": volume.fragment_size,
            "total_bytes": volume.total_bytes,
            "used_bytes": volume.used_bytes,
            "free_bytes": volume.free_bytes,
            "available_bytes": volume.available_bytes,
            "mountpoint": str(volume.mountpoint) if volume.mountpoint is not None else None,
            "device": volume.device,
        },
        "errors": [str(error) for error in description.errors],
    }


def to_json(data: object) -> str:
    return json.dumps(data, indent=2, sort_keys=True)
