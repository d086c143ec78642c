"""Structured logging for StoryPath.

Console output goes to stderr through Rich, filtered by the ``-v`` count.
With ``--log`` every event is also appended to ``{log_dir}/logs/debug.jsonl``
as one JSON object per line, so a play session can be replayed from its log.

Events are snake_case names with keyword context::

    log.info("scene_entered", scene_id="scene4", is_ending=False)

``session_context`` binds keys (story name, session id) onto every event
logged inside it.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.typing import EventDict, Processor

LOG_FILENAME = "debug.jsonl"

# Third-party loggers kept at WARNING even under -vv
QUIET_LOGGERS = ("asyncio", "markdown_it")

_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


class JSONLFileHandler(logging.FileHandler):
    """Appends each record as a single JSON line."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(_record_to_entry(record), default=str)
            if self.stream:
                self.stream.write(line + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _record_to_entry(record: logging.LogRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
    }
    # wrap_for_formatter hands the structlog event dict over as record.msg
    if not isinstance(record.msg, dict):
        entry["event"] = record.getMessage()
        return entry

    event_dict: EventDict = dict(record.msg)
    event_dict.pop("level", None)
    event_dict.pop("timestamp", None)
    entry["event"] = event_dict.pop("event", "")
    entry.update(event_dict)
    return entry


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=_VERBOSITY_LEVELS.get(verbosity, logging.DEBUG),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        # Scene text may contain square brackets
        markup=False,
    )


def _open_file_handler(log_dir: Path) -> JSONLFileHandler:
    global _logs_dir

    _logs_dir = log_dir / "logs"
    _logs_dir.mkdir(parents=True, exist_ok=True)
    handler = JSONLFileHandler(str(_logs_dir / LOG_FILENAME), mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure stdlib logging and structlog.

    Safe to call more than once; the latest call wins and any previously
    opened log file is closed.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event to ``{log_dir}/logs/debug.jsonl``.
        log_dir: Base directory for the log file. Required with ``log_to_file``.

    Raises:
        ValueError: If log_to_file is set without log_dir.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    _logs_dir = None

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _file_handler = _open_file_handler(log_dir)
        handlers.append(_file_handler)

    # The file handler wants everything; the console handler filters itself
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


@contextmanager
def session_context(**context: Any) -> Iterator[None]:
    """Bind ``context`` onto every event logged inside the block.

    Example::

        with session_context(story="anise_ray", session="a1b2"):
            engine.initialize(story.graph)
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logs_dir() -> Path | None:
    """Directory holding the JSONL log, or None if file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    """Flush and close the JSONL log file, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
