"""Leveled structured loggers for the MFA server.

The server logs through four handles, one per level. Handles for levels
above the configured verbosity stay bound to a discarding logger, so call
sites never check levels themselves::

    config.server.loggers.info.msg("user authenticated", user="alice")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, Optional, TextIO

import structlog
from structlog.processors import CallsiteParameter
from structlog.types import EventDict, Processor, WrappedLogger

from mfa_server.domain.errors import ConfigIOError
from mfa_server.domain.value_objects.log_level import LogLevel, active_levels

LOG_FILE_MODE = 0o664


def _tag_level(level: LogLevel) -> Processor:
    name = level.value

    def add_fixed_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["level"] = name
        return event_dict

    return add_fixed_level


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def _leveled_logger(level: LogLevel, stream: TextIO, log_format: str) -> Any:
    processors: list[Processor] = [
        _tag_level(level),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            {CallsiteParameter.FILENAME, CallsiteParameter.LINENO}
        ),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]
    return structlog.wrap_logger(structlog.PrintLogger(file=stream), processors=processors)


def discard_logger() -> Any:
    """A logger that renders nothing and writes nowhere."""
    return structlog.wrap_logger(structlog.ReturnLogger(), processors=[])


@dataclass(frozen=True)
class LogSink:
    """An opened log destination."""
    stream: TextIO
    path: Optional[str] = None


def open_log_sink(path: Optional[str]) -> LogSink:
    """Open the log file for appending, or fall back to stdout.

    Raises:
        ConfigIOError: If the file cannot be created or opened.
    """
    if not path:
        return LogSink(stream=sys.stdout)
    try:
        fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, LOG_FILE_MODE)
        stream = os.fdopen(fd, "a", encoding="utf-8")
    except OSError as e:
        raise ConfigIOError(f"Could not open log file {path}: {e}", path=path) from e
    return LogSink(stream=stream, path=path)


@dataclass(frozen=True)
class Loggers:
    """The four leveled logger handles."""
    debug: Any
    info: Any
    warning: Any
    error: Any

    @classmethod
    def discarding(cls) -> Loggers:
        return cls(
            debug=discard_logger(),
            info=discard_logger(),
            warning=discard_logger(),
            error=discard_logger(),
        )

    @classmethod
    def for_level(cls, level: LogLevel, sink: LogSink, log_format: str = "console") -> Loggers:
        """Bind the handles active under ``level`` to ``sink``.

        ERROR is always active. Less verbose levels than ``level`` are active
        too; the rest discard.
        """
        live = active_levels(level) | {LogLevel.ERROR}

        def handle(candidate: LogLevel) -> Any:
            if candidate in live:
                return _leveled_logger(candidate, sink.stream, log_format)
            return discard_logger()

        return cls(
            debug=handle(LogLevel.DEBUG),
            info=handle(LogLevel.INFO),
            warning=handle(LogLevel.WARNING),
            error=handle(LogLevel.ERROR),
        )

    def handle(self, level: LogLevel) -> Any:
        return getattr(self, level.value.lower())

    def rebound(self) -> Loggers:
        """Fresh handle objects over the same sinks."""
        return Loggers(
            debug=self.debug.bind(),
            info=self.info.bind(),
            warning=self.warning.bind(),
            error=self.error.bind(),
        )


def setup_loggers(
    level: LogLevel,
    log_file: Optional[str],
    log_format: str = "console",
    current_sink: Optional[LogSink] = None,
) -> tuple[Loggers, LogSink]:
    """Open the destination and build the leveled handles.

    Safe to re-run: when ``current_sink`` already points at ``log_file`` it
    is reused instead of opening the file again. A replaced sink is left
    open because earlier configurations still log to it; sinks live for the
    lifetime of the process.
    """
    if current_sink is not None and current_sink.path == (log_file or None):
        sink = current_sink
    else:
        sink = open_log_sink(log_file)
    return Loggers.for_level(level, sink, log_format), sink
