"""
NetSDR Client - Logging Configuration

One-time root logger setup for the client and its console. Modules log
through logging.getLogger(__name__); this module only decides where the
records go and how they look.

Usage:
    from netsdr_client.core.logging_config import configure_logging

    configure_logging(config.logging)

    # or, without a config object
    setup_logging(level="DEBUG", log_file="netsdr_client.log")

Console output is plain text (colored on a terminal) or JSON lines. The
optional log file is always JSON lines and rotates by size.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

# Anything on a LogRecord beyond these came in through extra={}
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_initialized = False


def _extra_fields(record: logging.LogRecord) -> dict:
    return {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}


def _encode(value):
    # Frames show up in extras as bytes
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, extras included as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(_extra_fields(record))
        return json.dumps(entry, default=_encode)


class ColoredFormatter(logging.Formatter):
    """Level-colored console lines for interactive sessions."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return line
        return line.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)


def _console_formatter(structured: bool, colored: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    if colored and sys.stdout.isatty():
        return ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT)
    return logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT)


def setup_logging(
    level: str | int = "INFO",
    log_file: str | None = None,
    structured: bool = False,
    colored: bool = True,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> None:
    """
    Install the console handler and, if log_file is given, a rotating
    JSON file handler on the root logger.

    Only the first call has an effect; call reset_logging() to start over.

    Args:
        level: Level name or number for the root logger and its handlers
        log_file: Path of the rotating JSON log; parent dirs are created
        structured: JSON lines on the console instead of text
        colored: Color the level name when stdout is a terminal
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
    """
    global _initialized
    if _initialized:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_console_formatter(structured, colored))
    root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)

    # Selector and proactor debug chatter
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _initialized = True
    root.debug(
        "Logging configured",
        extra={"log_file": log_file, "structured": structured},
    )


def configure_logging(config) -> None:
    """setup_logging() from a LoggingConfig."""
    setup_logging(
        level=config.level,
        log_file=config.log_file,
        structured=config.structured,
        colored=config.colored,
    )


def reset_logging() -> None:
    """Close and remove the root handlers so setup_logging() runs again."""
    global _initialized
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _initialized = False


def log_exchange(
    logger: logging.Logger, item: str, duration_ms: float, frame_len: int, **extra
) -> None:
    """
    Record one completed command/response exchange at debug level.

    Args:
        logger: Logger of the calling module
        item: Control item name of the command
        duration_ms: Time from send to response
        frame_len: Response length in bytes
        **extra: Further fields for structured output
    """
    logger.debug(
        f"{item} answered in {duration_ms:.2f} ms",
        extra={
            "item": item,
            "duration_ms": round(duration_ms, 2),
            "response_len": frame_len,
            **extra,
        },
    )
