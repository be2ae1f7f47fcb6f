"""Shared utility modules for common operations.

This package provides:
- Size formatting (bytes to IEC units)
- Report rendering for aggregate maps, trees and volume statistics
- Logging configuration with scan ID tracking
"""

from dirstat.utils.formatting import (
    format_size,
    render_aggregate,
    render_errors,
    render_report,
    render_tree,
    render_volume,
)

__all__ = [
    "format_size",
    "render_aggregate",
    "render_errors",
    "render_report",
    "render_tree",
    "render_volume",
]
