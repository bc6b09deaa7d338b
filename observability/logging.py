"""Logging setup with run-id context propagation.

Every pipeline run sets a short run ID; a logging filter stamps it onto
each record so interleaved output from concurrent items in a batch can be
traced back to its run.

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context("a1b2c3d4")
    >>> logger.info("Pipeline started")  # carries run_id
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILE_NAME = "hnbrief.log"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("aiohttp", "httpx", "httpcore", "openai", "anthropic", "asyncio")

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
    "thread", "threadName", "taskName", "run_id", "message",
})


def set_run_context(run_id: str) -> None:
    run_id_var.set(run_id)


def clear_context() -> None:
    run_id_var.set("-")


class ContextFilter(logging.Filter):
    """Stamp the current run ID onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        return True


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, logger, message, run_id; warnings and above add
    a source location, and any `extra=` fields are copied through.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }
        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, _json_safe(value))
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        )
        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """TIMESTAMP [LEVEL] [run_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _make_formatter(log_format: str, for_file: bool) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    return TextFormatter(include_date=for_file)


def _open_log_file(log_dir: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    """Size-based rotation when max_bytes > 0, otherwise rotate at midnight.

    Raises:
        OSError: If the directory cannot be created or written
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    marker = log_dir / ".write_test"
    marker.touch()
    marker.unlink()

    path = log_dir / LOG_FILE_NAME
    if max_bytes > 0:
        return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    return TimedRotatingFileHandler(path, when="midnight", backupCount=backup_count, encoding="utf-8")


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Install a console handler and, when possible, a rotating log file.

    Args:
        config: Anything with log_dir, log_level, log_format,
                log_max_bytes and log_backup_count
        verbose: Force DEBUG on the console

    Returns:
        True if the log file is active, False when logging to console only
    """
    stamp = ContextFilter()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO))
    console.setFormatter(_make_formatter(config.log_format, for_file=False))
    console.addFilter(stamp)
    root.addHandler(console)

    try:
        file_handler = _open_log_file(config.log_dir, config.log_max_bytes, config.log_backup_count)
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )
        file_handler = None
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_make_formatter(config.log_format, for_file=True))
        file_handler.addFilter(stamp)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return file_handler is not None
