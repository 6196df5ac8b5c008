"""Logging configuration for slicewise.

Structured logging via loguru. The library logs nothing by default; call
``setup_logging`` (or set ``SLICEWISE_LOG_LEVEL``) to add sinks.

Example:
    from slicewise import LogConfig, setup_logging, teardown_logging

    handlers = setup_logging(LogConfig(level="DEBUG", console=True, file=None))
    try:
        reduce_sum(partial_sum, xs, 0)
    finally:
        teardown_logging(handlers)
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from loguru import logger

# Disabled by default (library behavior)
logger.disable("slicewise")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

LOG_LEVELS: tuple[str, ...] = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR")


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{thread.name: <14}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | "
    "{name}:{function}:{line} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level (TRACE, DEBUG, INFO, WARNING, ERROR).
        file: Path to log file, or None for no file. Defaults to None.
        console: Whether to log to stderr. Defaults to True.
        rotation: File rotation policy (e.g., "50 MB", "1 day"). Defaults to "50 MB".
        retention: Number of old log files to keep. Defaults to 10.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10

    def __post_init__(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.level!r}. Valid: {', '.join(LOG_LEVELS)}"
            )


_lock = threading.Lock()


def setup_logging(config: LogConfig) -> list[int]:
    """Enable slicewise logging and return handler IDs for cleanup.

    Args:
        config: Logging configuration.

    Returns:
        List of handler IDs that were added (for later removal).
    """
    with _lock:
        logger.enable("slicewise")
        handler_ids: list[int] = []

        if config.console:
            hid = logger.add(
                sys.stderr,
                level=config.level,
                format=CONSOLE_FORMAT,
                colorize=True,
                filter="slicewise",
            )
            handler_ids.append(hid)

        if config.file:
            Path(config.file).parent.mkdir(parents=True, exist_ok=True)
            hid = logger.add(
                config.file,
                level=config.level,
                format=FILE_FORMAT,
                filter="slicewise",
                rotation=config.rotation,
                retention=config.retention,
                compression="zip",
                diagnose=False,
                enqueue=False,
            )
            handler_ids.append(hid)

        return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers and disable logging.

    Args:
        handler_ids: List of handler IDs to remove.
    """
    with _lock:
        for hid in handler_ids:
            logger.remove(hid)
        logger.disable("slicewise")
