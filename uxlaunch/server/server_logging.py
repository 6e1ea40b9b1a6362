"""
Server logging configuration helpers.

This module owns runtime logging setup for the launcher process, including
version-tagged formatting and optional file handler wiring, and the log sink
that collaborators (engine and renderers) write into.
"""

from __future__ import annotations

import logging

from uxlaunch import __version__
from uxlaunch.common.types import CollaboratorLogLevel

__all__ = [
    "LogSink",
    "logging_setup",
    "logFormatWithVersion_get",
    "logLevel_resolve",
    "COLLABORATOR_LOGGER_NAME",
]

COLLABORATOR_LOGGER_NAME: str = "uxlaunch.collaborator"

_LEVEL_MAP: dict[int, int] = {
    CollaboratorLogLevel.ERR: logging.ERROR,
    CollaboratorLogLevel.WARNING: logging.WARNING,
    CollaboratorLogLevel.INFO: logging.INFO,
    CollaboratorLogLevel.DEBUG: logging.DEBUG,
}


def logging_setup(level: str, log_format: str, log_file: str | None) -> None:
    """
    Configure logging handlers and version-tagged format string.

    Args:
        level:
            Effective log level token (for example `INFO` or `DEBUG`).
        log_format:
            Base formatter string.
        log_file:
            Optional log file path.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    enhanced_format: str = logFormatWithVersion_get(log_format)
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=enhanced_format,
        handlers=handlers,
    )


def logFormatWithVersion_get(log_format: str) -> str:
    """
    Inject runtime version tag into timestamped log format.

    Args:
        log_format:
            Base formatter string.

    Returns:
        Formatter string with embedded version token.
    """
    return log_format.replace("%(asctime)s", f"%(asctime)s [v{__version__}]")


def logLevel_resolve(configured_level: str, debug_log: bool) -> str:
    """
    Resolve effective process log level.

    Args:
        configured_level:
            Level from the YAML `logging` section.
        debug_log:
            Debug flag after `-d` toggles.

    Returns:
        Level token for `logging_setup`.
    """
    return "DEBUG" if debug_log else configured_level


class LogSink:
    """Shared sink mapping collaborator log levels onto stdlib logging."""

    def __init__(self) -> None:
        self._logger: logging.Logger = logging.getLogger(COLLABORATOR_LOGGER_NAME)
        self._level: CollaboratorLogLevel = CollaboratorLogLevel.INFO
        self.closed: bool = False

    def level_set(self, level: CollaboratorLogLevel) -> None:
        """
        Set the most verbose collaborator level that is forwarded.

        Args:
            level: Collaborator level threshold.
        """
        self._level = level

    def message_emit(self, level: int, text: str) -> None:
        """
        Forward one collaborator message.

        Messages more verbose than the threshold, unknown levels, and
        messages arriving after `close()` are dropped.

        Args:
            level: Collaborator (syslog-style) level.
            text: Message text.
        """
        if self.closed or level > self._level:
            return
        mapped: int | None = _LEVEL_MAP.get(level)
        if mapped is None:
            return
        self._logger.log(mapped, "%s", text.rstrip("\n"))

    def close(self) -> None:
        """Stop forwarding messages."""
        self.closed = True
