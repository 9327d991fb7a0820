"""Directory (LDAP) connection descriptors.

Builds what a directory client needs to connect: host, port, whether to
speak TLS, and the trust material for TLS. No connection is opened here.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from typing import Optional

from mfa_server.domain.errors import InvalidCertificateError
from mfa_server.domain.services.trust_store import TrustStore, trust_store_from_file
from mfa_server.domain.value_objects.endpoint import LDAPEndpoint, parse_ldap_endpoint


@dataclass(frozen=True)
class LDAPConnection:
    """Connection descriptor handed to the directory client."""
    host: str
    port: int
    use_tls: bool = False
    trust_store: Optional[TrustStore] = None

    def tls_context(self) -> Optional[ssl.SSLContext]:
        """Client TLS context for ldaps, None for plaintext."""
        if not self.use_tls or self.trust_store is None:
            return None
        return self.trust_store.client_context()


def build_ldap_connection(endpoint: Optional[str], trust_ca_cert: Optional[str]) -> LDAPConnection:
    """Parse the endpoint and assemble a connection descriptor.

    The ldaps scheme requires ``trust_ca_cert``; the CA file is loaded into a
    fresh trust store. For plain ldap the CA path is ignored.

    Raises:
        InvalidEndpointError: If the endpoint does not parse.
        InvalidCertificateError: If ldaps is used without a usable CA file.
        InvalidPEMError: If the CA file holds more than one PEM block.
        ConfigIOError: If the CA file cannot be read.
    """
    parsed: LDAPEndpoint = parse_ldap_endpoint(endpoint)
    if not parsed.uses_tls:
        return LDAPConnection(host=parsed.host, port=parsed.port)

    if not trust_ca_cert:
        raise InvalidCertificateError(f"A TrustCACert is required for LDAP endpoint {endpoint}")
    trust_store = trust_store_from_file(trust_ca_cert)
    # Fail here rather than at first connect if the CA cannot seed a context.
    trust_store.client_context()
    return LDAPConnection(host=parsed.host, port=parsed.port, use_tls=True, trust_store=trust_store)


USERNAME_PLACEHOLDER = "{username}"

_DN_SPECIAL = set(',+"\\<>;=')


def escape_dn_value(value: str) -> str:
    """Escape an attribute value for use inside a DN (RFC 4514)."""
    escaped = []
    for index, char in enumerate(value):
        if char in _DN_SPECIAL:
            escaped.append("\\" + char)
        elif char == "#" and index == 0:
            escaped.append("\\#")
        elif char == " " and index in (0, len(value) - 1):
            escaped.append("\\ ")
        elif char == "\x00":
            escaped.append("\\00")
        else:
            escaped.append(char)
    return "".join(escaped)


def render_dn_template(template: str, username: str) -> str:
    """Substitute an escaped username into a ``{username}`` DN template."""
    return template.replace(USERNAME_PLACEHOLDER, escape_dn_value(username))
