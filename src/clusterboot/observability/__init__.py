"""Observability module for clusterboot.

Provides structured key=value console logging and optional JSONL file logging.
"""

from clusterboot.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
