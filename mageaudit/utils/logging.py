"""Centralized logging configuration using Loguru.

Usage:
    from mageaudit.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if MAGEAUDIT_LOG_LEVEL=DEBUG

Environment Variables:
    MAGEAUDIT_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    MAGEAUDIT_LOG_JSON: 0|1 (default: 0, human-readable)
    MAGEAUDIT_LOG_FILE: path to log file (optional, always NDJSON)
"""

import json
import os
import sys
from pathlib import Path

from loguru import logger

# Remove default handler
logger.remove()

_log_level = os.environ.get("MAGEAUDIT_LOG_LEVEL", "WARNING").upper()
_json_mode = os.environ.get("MAGEAUDIT_LOG_JSON", "0") == "1"
_log_file = os.environ.get("MAGEAUDIT_LOG_FILE")


def _as_json(record) -> str:
    """Render one loguru record as a single JSON line."""
    payload = {
        "level": record["level"].name,
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "module": record["name"],
        "pid": record["process"].id,
    }
    for key, value in record["extra"].items():
        payload[key] = value
    if record["exception"]:
        payload["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }
    return json.dumps(payload, default=str)


def json_sink(message):
    """Write NDJSON records to stderr.

    CRITICAL: Never call logger.* inside a sink - causes infinite recursion
    """
    sys.stderr.write(_as_json(message.record) + "\n")
    sys.stderr.flush()


# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")

if _json_mode:
    logger.add(json_sink, level=_log_level, colorize=False)
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )

if _log_file:
    def _file_json_sink(message):
        """Append NDJSON records to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(_as_json(message.record) + "\n")

    logger.add(_file_json_sink, level="DEBUG")


def configure_file_logging(log_dir: Path, level: str = "DEBUG") -> int:
    """Add rotating file handler for persistent logs.

    Args:
        log_dir: Directory for log files (e.g., Path(".mageaudit"))
        level: Minimum log level for file output

    Returns:
        The loguru handler id, so embedding callers can remove it again.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "mageaudit.log"

    return logger.add(
        log_file,
        rotation="10 MB",
        retention="7 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )


__all__ = [
    "logger",
    "configure_file_logging",
]
