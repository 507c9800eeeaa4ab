"""
Process-wide logger manager built on loguru.

Configuration via environment (or .env):
- AGENTLOOP_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default WARNING)
- AGENTLOOP_LOG_MODE: development (stderr) or production (rotated files)
- AGENTLOOP_LOG_DIR: Directory for production log files (default: logs)
- AGENTLOOP_LOG_ROTATION: Rotation size or interval (e.g. "10 MB", "1 day")
- AGENTLOOP_LOG_RETENTION: Retention window (e.g. "7 days")

The sinks installed here only receive records bound by agentloop, and the
host application's own loguru handlers are never removed.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_MODE = "development"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[name]}:{function}:{line} - {message}"
)


class LoggerManager:
    """Singleton owning the loguru sinks installed by agentloop."""

    _instance: Optional["LoggerManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "LoggerManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if LoggerManager._initialized:
            return
        LoggerManager._initialized = True

        self.log_level = os.getenv("AGENTLOOP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        self.log_mode = os.getenv("AGENTLOOP_LOG_MODE", DEFAULT_LOG_MODE).lower()
        self.log_dir = Path(os.getenv("AGENTLOOP_LOG_DIR", DEFAULT_LOG_DIR))
        self.log_rotation = os.getenv("AGENTLOOP_LOG_ROTATION", DEFAULT_LOG_ROTATION)
        self.log_retention = os.getenv(
            "AGENTLOOP_LOG_RETENTION", DEFAULT_LOG_RETENTION
        )
        self._handler_ids: list[int] = []

        self._configure()

    def _configure(self) -> None:
        if self.log_mode == "production":
            self._configure_production()
        else:
            self._configure_development()

    def _configure_development(self) -> None:
        """Colored console output on stderr."""
        self._handler_ids.append(
            logger.add(
                sys.stderr,
                format=CONSOLE_FORMAT,
                level=self.log_level,
                colorize=True,
                backtrace=True,
                diagnose=False,
                filter=_agentloop_only,
            )
        )

    def _configure_production(self) -> None:
        """Rotated log files, with errors duplicated into their own file."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

        for file_name, level in (
            ("agentloop_{time:YYYY-MM-DD}.log", self.log_level),
            ("agentloop_error_{time:YYYY-MM-DD}.log", "ERROR"),
        ):
            self._handler_ids.append(
                logger.add(
                    self.log_dir / file_name,
                    format=FILE_FORMAT,
                    level=level,
                    rotation=self.log_rotation,
                    retention=self.log_retention,
                    encoding="utf-8",
                    enqueue=True,
                    filter=_agentloop_only,
                )
            )

    def get_logger(self, name: Optional[str] = None):
        """
        Get a logger bound to a component name.

        Args:
            name: Component name, usually ``__name__``. Defaults to "agentloop".

        Returns:
            A bound loguru logger
        """
        return logger.bind(name=name or "agentloop", agentloop=True)

    def set_level(self, level: str) -> None:
        """
        Change the level of the sinks installed by agentloop.

        Args:
            level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        self.log_level = level.upper()
        # Only our own handlers are replaced; the host's sinks stay untouched.
        for handler_id in self._handler_ids:
            logger.remove(handler_id)
        self._handler_ids.clear()
        self._configure()


def _agentloop_only(record) -> bool:
    return bool(record["extra"].get("agentloop"))


# ======================================================================
## Convenience Functions
# ======================================================================


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance. This is the recommended way to log inside agentloop.

    Example:
        from agentloop.utils.logger import get_logger

        log = get_logger(__name__)
        log.info("Agent ready")
    """
    return LoggerManager().get_logger(name)


def set_log_level(level: str) -> None:
    """Change the agentloop log level at runtime."""
    LoggerManager().set_level(level)


__all__ = ["LoggerManager", "get_logger", "set_log_level"]
