"""Observability module for StoryPath.

Provides structured logging for the engine, loaders and CLI.
"""

from storypath.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
    session_context,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
    "session_context",
]
