"""MFA server configuration bootstrap."""

from mfa_server.application.bootstrap import load
from mfa_server.infrastructure.config import Configuration

__all__ = [
    "Configuration",
    "load",
]

__version__ = "0.1.0"
