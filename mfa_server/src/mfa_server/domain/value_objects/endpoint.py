"""Directory endpoint parsing.

An endpoint has the form ``scheme://host[:port]`` where scheme is ``ldap``
(plaintext, default port 389) or ``ldaps`` (TLS, default port 636).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mfa_server.domain.errors import InvalidEndpointError


class LDAPScheme(Enum):
    """Recognized directory transport schemes."""
    LDAP = "ldap://"
    LDAPS = "ldaps://"

    @property
    def default_port(self) -> int:
        return 636 if self is LDAPScheme.LDAPS else 389

    @property
    def uses_tls(self) -> bool:
        return self is LDAPScheme.LDAPS


@dataclass(frozen=True)
class LDAPEndpoint:
    """Parsed directory endpoint."""
    scheme: LDAPScheme
    host: str
    port: int

    @property
    def uses_tls(self) -> bool:
        return self.scheme.uses_tls

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme.value}{host}:{self.port}"


def _strip_scheme(raw: str) -> tuple[LDAPScheme, str]:
    for scheme in (LDAPScheme.LDAPS, LDAPScheme.LDAP):
        if raw.startswith(scheme.value):
            return scheme, raw[len(scheme.value):]
    raise InvalidEndpointError(f"Invalid protocol in LDAP endpoint: {raw}")


def _parse_port(raw: str, segment: str) -> int:
    if not segment.isdigit():
        raise InvalidEndpointError(f"Invalid port {segment!r} in LDAP endpoint: {raw}")
    port = int(segment)
    if not 0 < port <= 65535:
        raise InvalidEndpointError(f"Port {port} out of range in LDAP endpoint: {raw}")
    return port


def parse_ldap_endpoint(raw: Optional[str]) -> LDAPEndpoint:
    """Parse a directory endpoint string.

    The port is located via the last colon of the host part. Bracketed IPv6
    literals (``ldap://[::1]:389``) are supported. A port segment that is not
    a decimal number in 1-65535 is rejected rather than defaulted.

    Raises:
        InvalidEndpointError: If the endpoint is absent, uses another scheme,
            has an empty or unbracketed IPv6 host, or carries a malformed
            port.
    """
    if not raw:
        raise InvalidEndpointError("LDAP EndPoint is not defined")

    scheme, remainder = _strip_scheme(raw)
    remainder = remainder.rstrip("/")

    port: Optional[int] = None
    if remainder.startswith("["):
        close = remainder.find("]")
        if close == -1:
            raise InvalidEndpointError(f"Unterminated IPv6 literal in LDAP endpoint: {raw}")
        host = remainder[1:close]
        tail = remainder[close + 1:]
        if tail:
            if not tail.startswith(":"):
                raise InvalidEndpointError(f"Unexpected text after host in LDAP endpoint: {raw}")
            port = _parse_port(raw, tail[1:])
    else:
        host = remainder
        idx = remainder.rfind(":")
        if idx != -1:
            host = remainder[:idx]
            if ":" in host:
                raise InvalidEndpointError(f"IPv6 host must be bracketed in LDAP endpoint: {raw}")
            port = _parse_port(raw, remainder[idx + 1:])

    if not host:
        raise InvalidEndpointError(f"No host in LDAP endpoint: {raw}")

    return LDAPEndpoint(
        scheme=scheme,
        host=host,
        port=port if port is not None else scheme.default_port,
    )
