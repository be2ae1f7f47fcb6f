"""Application entry point and CLI for dirstat.

This module implements the main entry point for the dirstat application,
providing CLI argument parsing, configuration loading, logging setup, and
scan lifecycle management with cancellation on SIGINT/SIGTERM.

Reports go to stdout; logs and error summaries go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from dirstat.core.aggregator import SizeMode, group_by_size
from dirstat.core.cancellation import CancellationToken
from dirstat.core.config import (
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    load_main_config,
)
from dirstat.core.exceptions import ListError
from dirstat.core.scanner import collect_tree, describe_paths, failed_roots, scan_paths
from dirstat.utils.formatting import (
    description_to_dict,
    display,
    render_description,
    render_report,
    render_size_groups,
    render_tree,
    report_to_dict,
    to_json,
    tree_to_dict,
)
from dirstat.utils.logging import configure_logging, get_logger

__all__ = ["main"]

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_ROOT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Returns:
        Parser for the dirstat command line

    CLI Arguments:
        PATH: One or more root directories to scan
        --config, -c: Path to a YAML configuration file
        --log-level: Override log level from config
        --syslog: Enable syslog integration
        --max-depth, --max-entries: Traversal limits
        --delay: Seconds to wait before scanning each discovered subdirectory
        --disk-usage: Count allocated blocks instead of apparent size
        --format: Report format (text or json)
        --tree: Print the collected tree instead of aggregate totals
        --volumes: Print volume statistics for each root
        --groups: Print sizes shared by more than one file
    """
    parser = argparse.ArgumentParser(
        prog="dirstat",
        description="Report per-directory size totals, file traits and volume capacity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dirstat /srv/data
  dirstat --disk-usage --max-depth 3 /home /var
  dirstat --tree --format json ./build
  dirstat --volumes --config /etc/dirstat.yaml /mnt/cache
        """,
    )

    _ = parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Root directories to scan",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (defaults apply if omitted)",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )

    _ = parser.add_argument(
        "--syslog",
        action="store_true",
        help="Enable syslog integration (overrides config)",
    )

    _ = parser.add_argument(
        "--max-depth",
        type=int,
        help="Deepest directory level to descend into",
        metavar="N",
    )

    _ = parser.add_argument(
        "--max-entries",
        type=int,
        help="Stop after reporting this many entries",
        metavar="N",
    )

    _ = parser.add_argument(
        "--delay",
        type=float,
        help="Seconds to wait before scanning each discovered subdirectory",
        metavar="SECONDS",
    )

    _ = parser.add_argument(
        "--disk-usage",
        action="store_true",
        help="Count allocated disk blocks instead of apparent file size",
    )

    _ = parser.add_argument(
        "--format",
        choices=["text", "json"],
        help="Report output format (overrides config)",
    )

    _ = parser.add_argument(
        "--tree",
        action="store_true",
        help="Collect and print the full tree of each root",
    )

    _ = parser.add_argument(
        "--volumes",
        action="store_true",
        help="Print volume statistics for each root",
    )

    _ = parser.add_argument(
        "--groups",
        action="store_true",
        help="Print file sizes shared by more than one file",
    )

    return parser


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def apply_overrides(config: MainConfig, args: argparse.Namespace) -> MainConfig:
    """Return a copy of ``config`` with command-line overrides applied.

    Raises:
        ConfigurationError: If an override fails validation
    """
    scan_updates: dict[str, object] = {}
    max_depth: int | None = args.max_depth  # pyright: ignore[reportAny]  # argparse boundary
    max_entries: int | None = args.max_entries  # pyright: ignore[reportAny]  # argparse boundary
    delay: float | None = args.delay  # pyright: ignore[reportAny]  # argparse boundary
    disk_usage: bool = args.disk_usage  # pyright: ignore[reportAny]  # argparse boundary
    groups: bool = args.groups  # pyright: ignore[reportAny]  # argparse boundary
    if max_depth is not None:
        scan_updates["max_depth"] = max_depth
    if max_entries is not None:
        scan_updates["max_entries"] = max_entries
    if delay is not None:
        scan_updates["resubmit_delay"] = delay
    if disk_usage:
        scan_updates["size_mode"] = SizeMode.DISK_USAGE
    if groups:
        scan_updates["track_size_groups"] = True

    report_updates: dict[str, object] = {}
    output_format: str | None = args.format  # pyright: ignore[reportAny]  # argparse boundary
    if output_format is not None:
        report_updates["format"] = output_format

    application_updates: dict[str, object] = {}
    log_level: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
    syslog: bool = args.syslog  # pyright: ignore[reportAny]  # argparse boundary
    if log_level is not None:
        application_updates["log_level"] = log_level
    if syslog:
        application_updates["syslog_enabled"] = True

    # Re-validate so overrides obey the same constraints as the YAML file
    data = config.model_dump()
    data["scan"].update(scan_updates)
    data["report"].update(report_updates)
    data["application"].update(application_updates)
    try:
        return MainConfig.model_validate(data)
    except ValueError as exc:
        msg = f"Invalid command-line option:\n{exc}"
        raise ConfigurationError(msg) from exc


async def async_main(args: argparse.Namespace) -> int:
    """Async main function implementing the scan lifecycle.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code

    Raises:
        ConfigurationError: If configuration is invalid
        EnvironmentVariableError: If a required environment variable is missing
    """
    config_path: Path | None = args.config  # pyright: ignore[reportAny]  # argparse boundary
    roots: list[Path] = args.paths  # pyright: ignore[reportAny]  # argparse boundary
    show_tree: bool = args.tree  # pyright: ignore[reportAny]  # argparse boundary
    show_volumes: bool = args.volumes  # pyright: ignore[reportAny]  # argparse boundary

    config = load_main_config(config_path) if config_path is not None else MainConfig()
    config = apply_overrides(config, args)

    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=config.application.syslog_enabled,
        enable_console=True,
    )
    logger = get_logger(__name__)
    logger.info(
        "dirstat starting",
        extra={"roots": [str(root) for root in roots], "config_path": str(config_path)},
    )

    token = CancellationToken()
    loop = asyncio.get_running_loop()

    def request_shutdown() -> None:
        token.cancel("interrupted")

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown)

    try:
        if show_tree:
            exit_code, document = await _run_tree(roots, config, token)
        else:
            exit_code, document = await _run_scan(roots, config, token)

        if show_volumes:
            volumes = await _run_volumes(roots, config)
            if document is not None:
                # One JSON document on stdout
                document = {"trees" if show_tree else "report": document, "volumes": volumes}

        if document is not None:
            print(to_json(document))
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(sig)

    logger.info("dirstat finished", extra={"exit_code": exit_code})
    return exit_code


async def _run_scan(
    roots: Sequence[Path], config: MainConfig, token: CancellationToken
) -> tuple[int, object | None]:
    """Scan the roots, printing text output or returning the JSON document."""
    report = await scan_paths(roots, config=config.scan, token=token)
    human = config.report.human_readable

    document: object | None = None
    if config.report.format == "json":
        document = report_to_dict(report)
    else:
        print(render_report(report, human=human, show_errors=config.report.show_errors))
        if config.scan.track_size_groups and report.size_groups:
            print()
            print(render_size_groups(report.size_groups, human=human))

    failed = failed_roots(report)
    for error in failed:
        print(f"dirstat: {display(str(error))}", file=sys.stderr)
    return (EXIT_ROOT_ERROR if failed else EXIT_SUCCESS), document


async def _run_tree(
    roots: Sequence[Path], config: MainConfig, token: CancellationToken
) -> tuple[int, object | None]:
    exit_code = EXIT_SUCCESS
    trees: list[dict[str, object]] = []
    for root in roots:
        try:
            node = await collect_tree(root, config=config.scan, token=token)
        except ListError as exc:
            print(f"dirstat: {display(str(exc))}", file=sys.stderr)
            exit_code = EXIT_ROOT_ERROR
            continue

        if config.report.format == "json":
            trees.append(tree_to_dict(node))
        else:
            print(render_tree(node, human=config.report.human_readable))
            if config.scan.track_size_groups:
                groups = group_by_size(node.iter_entries(), mode=config.scan.size_mode)
                print(render_size_groups(groups, human=config.report.human_readable))

    if config.report.format == "json":
        return exit_code, trees
    return exit_code, None


async def _run_volumes(roots: Sequence[Path], config: MainConfig) -> list[dict[str, object]]:
    descriptions = await describe_paths(roots)
    if config.report.format == "json":
        return [description_to_dict(description) for description in descriptions]
    for description in descriptions:
        print(render_description(description, human=config.report.human_readable))
    return []


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Main entry point for dirstat.

    Exit Codes:
        0: Success (errors below a root are reported but not fatal)
        1: Configuration error
        2: A root argument could not be listed
    """
    args = parse_arguments(argv)

    try:
        exit_code = asyncio.run(async_main(args))

    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except EnvironmentVariableError as exc:
        print(f"Environment variable error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(EXIT_SUCCESS)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
