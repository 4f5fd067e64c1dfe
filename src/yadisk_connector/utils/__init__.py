"""Shared utilities."""

from .logging import (
    setup_logging,
    get_logger,
    log_async_execution_time
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_async_execution_time"
]
