"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from dirstat.utils.logging import clear_scan_id


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Root with a.txt (10 B) and sub/b.txt (20 B)."""
    root = tmp_path / "r"
    (root / "sub").mkdir(parents=True)
    _ = (root / "a.txt").write_bytes(b"x" * 10)
    _ = (root / "sub" / "b.txt").write_bytes(b"y" * 20)
    return root


@pytest.fixture
def nested_tree(tmp_path: Path) -> Path:
    """Three-level tree: 4 files and 3 directories below the root.

    root/
      top.bin        (100 B)
      one/
        mid.bin      (200 B)
        two/
          low.bin    (300 B)
          three/
            deep.bin (400 B)
    """
    root = tmp_path / "nested"
    deepest = root / "one" / "two" / "three"
    deepest.mkdir(parents=True)
    _ = (root / "top.bin").write_bytes(b"a" * 100)
    _ = (root / "one" / "mid.bin").write_bytes(b"b" * 200)
    _ = (root / "one" / "two" / "low.bin").write_bytes(b"c" * 300)
    _ = (deepest / "deep.bin").write_bytes(b"d" * 400)
    return root


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Restore root logger handlers and clear the scan ID after each test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    clear_scan_id()
