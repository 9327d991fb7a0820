"""Application layer for the MFA server configuration bootstrap."""

from mfa_server.application.bootstrap import PIPELINE, load

__all__ = [
    "PIPELINE",
    "load",
]
