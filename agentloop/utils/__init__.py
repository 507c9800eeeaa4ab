"""
Utility modules for agentloop.

- logger: Structured logging with loguru
"""

from agentloop.utils.logger import get_logger, set_log_level, LoggerManager

__all__ = [
    "get_logger",
    "set_log_level",
    "LoggerManager",
]
