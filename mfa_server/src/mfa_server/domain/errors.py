"""Configuration error taxonomy.

Every validator in the bootstrap pipeline raises one of these. The
orchestrator stamps the failing step onto the error before re-raising it,
so callers can both match on the type and read where the load stopped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ConfigurationError(Exception):
    """Base class for configuration bootstrap failures."""

    def __init__(self, message: str, *, path: Optional[str | Path] = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.step: Optional[str] = None

    def __str__(self) -> str:
        if self.step:
            return f"{self.step}: {self.message}"
        return self.message


class ConfigIOError(ConfigurationError):
    """A file could not be read or opened for writing."""
    pass


class ConfigParseError(ConfigurationError):
    """A JSON document was malformed or did not fit the expected shape."""
    pass


class InvalidLogLevelError(ConfigurationError):
    """Log level missing or not one of the recognized tokens."""
    pass


class InvalidEndpointError(ConfigurationError):
    """Directory endpoint is absent, has an unknown scheme, or a bad port."""
    pass


class InvalidPEMError(ConfigurationError):
    """File is not exactly one well-formed PEM block."""
    pass


class InvalidKeyPairError(ConfigurationError):
    """Certificate and private key do not form a usable pair."""
    pass


class InvalidCertificateError(ConfigurationError):
    """Certificate bytes are empty or do not decode."""
    pass


class MissingCredentialError(ConfigurationError):
    """Neither an inline UserID nor a UserIDFile was supplied."""
    pass


class InvalidListenerSocketError(ConfigurationError):
    """Listener address is not a valid host:port pair."""
    pass


class InvalidDirectorySettingsError(ConfigurationError):
    """Directory admin settings are incomplete or malformed."""
    pass
