"""
Logging configuration with a coloured, tag-based console handler.

Usage:
    from logging_config import get_logger
    logger = get_logger("monitor")
    logger.info("Refreshing skills", extra={"character_id": 123})
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

# ANSI color codes for console output
COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

# Module-specific colors for tags
TAG_COLORS = {
    "monitor": "\033[96m",  # Cyan
    "esi": "\033[94m",  # Blue
    "discord": "\033[93m",  # Yellow
    "web": "\033[95m",  # Magenta
    "storage": "\033[92m",  # Green
    "onboarding": "\033[97m",  # White
}


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that prints `HH:MM:SS LEVEL [tag] message (character=...)`."""

    def format(self, record: logging.LogRecord) -> str:
        level_color = COLORS.get(record.levelname, "")
        reset = COLORS["RESET"]

        tag = record.name
        tag_color = TAG_COLORS.get(tag, "\033[37m")

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level_str = f"{level_color}{record.levelname:8}{reset}"
        tag_str = f"{tag_color}[{tag}]{reset}"

        extra_parts = []
        if getattr(record, "character_id", None):
            extra_parts.append(f"character={record.character_id}")
        if getattr(record, "state", None):
            extra_parts.append(f"state={record.state[:8]}")

        extra_str = f" ({', '.join(extra_parts)})" if extra_parts else ""
        msg = f"{timestamp} {level_str} {tag_str} {record.getMessage()}{extra_str}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


_initialized = False


def _get_console_level() -> int:
    """Get console log level from environment variable."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def init_logging(console_level: int | None = None):
    """Initialize the logging system with the console handler."""
    global _initialized

    if _initialized:
        return

    if console_level is None:
        console_level = _get_console_level()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(console_level)
    root_logger.addHandler(console_handler)

    # discord.py and uvicorn are chatty at DEBUG
    logging.getLogger("discord").setLevel(max(console_level, logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    if not _initialized:
        init_logging()
    return logging.getLogger(name)
