"""Log level tokens and the verbosity hierarchy.

Levels are ordered ERROR < WARNING < INFO < DEBUG by verbosity. Selecting a
level activates it and every less verbose level; ERROR is always active.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from mfa_server.domain.errors import InvalidLogLevelError


class LogLevel(Enum):
    """Recognized log level tokens, least verbose first."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"

    @property
    def verbosity(self) -> int:
        return _ORDER.index(self)

    def activates(self, other: LogLevel) -> bool:
        """Whether selecting this level turns on the ``other`` sink."""
        return other.verbosity <= self.verbosity


_ORDER = [LogLevel.ERROR, LogLevel.WARNING, LogLevel.INFO, LogLevel.DEBUG]

VALID_LOG_LEVELS = [level.value for level in _ORDER]


def parse_log_level(value: Optional[str]) -> LogLevel:
    """Resolve a configured log level string.

    Args:
        value: Raw token from the document or a mutator call. ``None`` and
            ``""`` are rejected, there is no implicit default level.

    Returns:
        The matching LogLevel.

    Raises:
        InvalidLogLevelError: If the token is missing or unrecognized.
    """
    if not value:
        raise InvalidLogLevelError(
            f"No log level was provided. Accepted values are {VALID_LOG_LEVELS}"
        )
    try:
        return LogLevel(value)
    except ValueError:
        raise InvalidLogLevelError(
            f"An invalid log level of {value!r} was provided. Accepted values are {VALID_LOG_LEVELS}"
        ) from None


def active_levels(level: LogLevel) -> set[LogLevel]:
    """Levels whose sinks are live when ``level`` is selected."""
    return {candidate for candidate in _ORDER if level.activates(candidate)}
