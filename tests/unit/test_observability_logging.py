"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from clusterboot.observability import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    close_file_logging()
    configure_logging(verbosity=0)


@pytest.mark.parametrize(
    ("verbosity", "level"),
    [(-1, logging.WARNING), (0, logging.INFO), (1, logging.DEBUG), (2, logging.DEBUG)],
)
def test_configure_logging_console_level(verbosity: int, level: int) -> None:
    """-q maps to WARNING, the default to INFO, -v and above to DEBUG."""
    configure_logging(verbosity=verbosity)

    assert logging.getLogger().level == level


def test_get_logger_returns_bound_logger() -> None:
    """get_logger returns a structlog logger with expected methods."""
    logger = get_logger(__name__)

    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "error")
    assert hasattr(logger, "warning")


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    import clusterboot.observability.logging as log_module

    log_module._configured = False

    logger = get_logger("test")

    assert log_module._configured is True
    assert logger is not None


def test_file_logging_creates_log_dir(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    configure_logging(verbosity=0, log_dir=log_dir)

    assert log_dir.is_dir()
    assert get_logs_dir() == log_dir
    # File capture needs everything to reach the handlers
    assert logging.getLogger().level == logging.DEBUG


def test_no_file_logging_by_default() -> None:
    configure_logging(verbosity=0)

    assert get_logs_dir() is None


def test_configure_logging_reconfiguration_closes_handler(tmp_path: Path) -> None:
    """Reconfiguring logging closes previous file handler."""
    import clusterboot.observability.logging as log_module

    configure_logging(verbosity=0, log_dir=tmp_path)
    first_handler = log_module._file_handler
    assert first_handler is not None

    configure_logging(verbosity=0, log_dir=tmp_path)
    second_handler = log_module._file_handler

    # First handler should have been closed (stream is None after close)
    assert first_handler.stream is None or first_handler.stream.closed
    assert second_handler is not None


def test_close_file_logging_clears_handler(tmp_path: Path) -> None:
    import clusterboot.observability.logging as log_module

    configure_logging(verbosity=0, log_dir=tmp_path)
    assert log_module._file_handler is not None

    close_file_logging()

    assert log_module._file_handler is None


def test_jsonl_file_handler_writes_structlog_context(tmp_path: Path) -> None:
    """JSONLFileHandler correctly extracts structlog context to JSONL."""
    configure_logging(verbosity=-1, log_dir=tmp_path)

    logger = get_logger("test.context")
    logger.debug("resource_applied", resource="Namespace/cert-manager", count=3)

    close_file_logging()

    log_file = tmp_path / "bootstrap.jsonl"
    assert log_file.exists()

    entries = [json.loads(line) for line in log_file.read_text().splitlines()]
    entry = next(e for e in entries if e.get("message") == "resource_applied")
    assert entry["resource"] == "Namespace/cert-manager"
    assert entry["count"] == 3
    assert entry["level"] == "DEBUG"
    assert entry["logger"] == "test.context"
