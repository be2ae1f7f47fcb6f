"""Unit tests for logging configuration and scan ID tracking."""

import asyncio
import logging
import logging.handlers
from unittest.mock import patch

import pytest

from dirstat.utils.logging import (
    ScanIDFilter,
    clear_scan_id,
    configure_logging,
    get_logger,
    get_scan_id,
    set_scan_id,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)


class TestScanIDFilter:
    """Test ScanIDFilter."""

    def test_default_placeholder(self) -> None:
        """Records outside a scan get '-'."""
        record = _record()

        assert ScanIDFilter().filter(record) is True
        assert record.scan_id == "-"  # pyright: ignore[reportAttributeAccessIssue]

    def test_current_scan_id(self) -> None:
        """Records inside a scan carry its ID."""
        set_scan_id("abc123")
        record = _record()

        _ = ScanIDFilter().filter(record)

        assert record.scan_id == "abc123"  # pyright: ignore[reportAttributeAccessIssue]

    def test_clear(self) -> None:
        """clear_scan_id resets to None."""
        set_scan_id("abc123")
        clear_scan_id()

        assert get_scan_id() is None

    @pytest.mark.asyncio
    async def test_inherited_by_worker_threads(self) -> None:
        """asyncio.to_thread copies the context into the worker."""
        set_scan_id("threaded")

        assert await asyncio.to_thread(get_scan_id) == "threaded"


class TestConfigureLogging:
    """Test configure_logging."""

    def test_console_handler_on_stderr(self) -> None:
        """A single stderr handler with the scan filter is installed."""
        configure_logging(log_level="debug")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert any(isinstance(f, ScanIDFilter) for f in handler.filters)

    def test_reconfigure_does_not_duplicate(self) -> None:
        """Repeated configuration replaces handlers."""
        configure_logging()
        configure_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_falls_back_to_warning(self) -> None:
        """Unknown level names use WARNING."""
        configure_logging(log_level="chatty")

        assert logging.getLogger().level == logging.WARNING

    def test_syslog_unavailable(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Syslog connection failures fall back to console with a warning."""
        with patch.object(logging.handlers, "SysLogHandler", side_effect=OSError("no socket")):
            configure_logging(enable_syslog=True)

        assert "Could not connect to syslog" in capsys.readouterr().err
        assert len(logging.getLogger().handlers) == 1

    def test_syslog_handler_added(self) -> None:
        """A reachable syslog adds a second handler."""
        fake = logging.NullHandler()
        with patch.object(logging.handlers, "SysLogHandler", return_value=fake):
            configure_logging(enable_syslog=True, syslog_address="/tmp/log.sock")

        assert fake in logging.getLogger().handlers
        assert len(logging.getLogger().handlers) == 2

    def test_get_logger(self) -> None:
        """get_logger returns the named logger."""
        assert get_logger("dirstat.x") is logging.getLogger("dirstat.x")
