"""Configuration system for dirstat.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Every section has defaults, so an
empty file (or no file at all) yields a usable configuration.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dirstat.core.aggregator import SizeMode
from dirstat.core.cancellation import TraversalLimits

# Matches ${VARIABLE_NAME} where VARIABLE_NAME contains letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class ScanConfig(BaseModel):
    """Traversal and aggregation behavior."""

    resubmit_delay: Annotated[
        float,
        Field(
            ge=0,
            description="Seconds to wait before scanning a discovered subdirectory",
        ),
    ] = 0.0
    max_depth: Annotated[
        int | None,
        Field(
            gt=0,
            description="Deepest directory level to descend into (unlimited if unset)",
        ),
    ] = None
    max_entries: Annotated[
        int | None,
        Field(
            gt=0,
            description="Truncate the run after this many entries (unlimited if unset)",
        ),
    ] = None
    size_mode: Annotated[
        SizeMode,
        Field(
            description="Measure apparent size or allocated disk usage",
        ),
    ] = SizeMode.APPARENT
    track_size_groups: Annotated[
        bool,
        Field(
            description="Group files by size to spot candidate duplicates",
        ),
    ] = False

    def limits(self) -> TraversalLimits:
        """Traversal limits derived from this configuration."""
        return TraversalLimits(max_depth=self.max_depth, max_entries=self.max_entries)


class ReportConfig(BaseModel):
    """Output rendering behavior."""

    format: Annotated[
        Literal["text", "json"],
        Field(description="Report output format"),
    ] = "text"
    show_errors: Annotated[
        bool,
        Field(description="Include traversal errors in the report"),
    ] = True
    human_readable: Annotated[
        bool,
        Field(description="Render sizes with IEC units instead of raw bytes"),
    ] = True


class ApplicationConfig(BaseModel):
    """Application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "WARNING"
    syslog_enabled: Annotated[
        bool,
        Field(description="Enable syslog integration"),
    ] = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept log levels in any case.

        Args:
            v: Raw log level value

        Returns:
            Uppercased level for strings, anything else unchanged
        """
        if isinstance(v, str):
            return v.strip().upper()
        return v


class MainConfig(BaseModel):
    """Top-level configuration container.

    Aggregates all configuration sections:
    - scan: traversal limits, delays and size accounting
    - report: output rendering
    - application: logging
    """

    scan: Annotated[
        ScanConfig,
        Field(description="Traversal configuration"),
    ] = ScanConfig()
    report: Annotated[
        ReportConfig,
        Field(description="Report configuration"),
    ] = ReportConfig()
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """A ``${NAME}`` reference names an unset environment variable."""


class ConfigurationError(Exception):
    """The configuration file is missing, unreadable or invalid.

    The message is meant for the terminal: it names the file and, for
    validation failures, every offending field.
    """


def resolve_env_var(value: str) -> str:
    """Substitute ``${NAME}`` references in ``value`` from the environment.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["SCAN_DELAY"] = "0.5"
        >>> resolve_env_var("${SCAN_DELAY}")
        '0.5'
        >>> resolve_env_var("plain")
        'plain'
    """

    def lookup(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in os.environ:
            msg = f"Environment variable '{name}' is referenced but not set"
            raise EnvironmentVariableError(msg)
        return os.environ[name]

    return ENV_VAR_PATTERN.sub(lookup, value)


def _resolve_value(value: object) -> object:
    if isinstance(value, str):
        return resolve_env_var(value)
    if isinstance(value, dict):
        return resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    return value


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Return a copy of ``data`` with references resolved in every string.

    Nested mappings and lists are walked; other scalars are kept as-is.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set
    """
    return {key: _resolve_value(value) for key, value in data.items()}


def _read_yaml(config_path: Path) -> object:
    try:
        with config_path.open("r") as f:
            return yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML in {config_path}:\n{e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Cannot read configuration file {config_path}: {e}"
        raise ConfigurationError(msg) from e


def _describe_validation_error(config_path: Path, error: ValidationError) -> str:
    lines = [f"Invalid configuration in {config_path}:"]
    for detail in error.errors():
        location = " → ".join(str(part) for part in detail["loc"])
        lines.append(f"  Field: {location}")
        lines.append(f"    {detail['msg']} ({detail['type']})")
    return "\n".join(lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate configuration from a YAML file.

    An empty file yields the defaults.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise ConfigurationError(msg)

    raw_data = _read_yaml(config_path)
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Expected YAML dictionary at the root of {config_path}, "
            f"got {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = f"Cannot resolve {config_path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(config_path, e)) from e
