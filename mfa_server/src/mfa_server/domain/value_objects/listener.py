"""Listener socket addresses (``host:port``)."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

from mfa_server.domain.errors import InvalidListenerSocketError

_HOSTNAME_RE = re.compile(r"^(?=.{1,253}$)([A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\.?$")


@dataclass(frozen=True)
class ListenerSocket:
    host: str
    port: int

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


def parse_listener_socket(value: str) -> ListenerSocket:
    """Parse and validate a TCP listen address.

    The host may be empty (all interfaces), an IPv4 or bracketed IPv6
    literal, or a host name. No name resolution is performed.

    Raises:
        InvalidListenerSocketError: If the address is malformed.
    """
    def _invalid(reason: str) -> InvalidListenerSocketError:
        return InvalidListenerSocketError(f"Invalid listener socket {value!r} defined for MFA server: {reason}")

    host, sep, port_text = value.rpartition(":")
    if not sep:
        raise _invalid("missing port")
    if not port_text.isdigit() or int(port_text) > 65535:
        raise _invalid(f"bad port {port_text!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            raise _invalid(f"bad IPv6 address {host!r}") from None
    elif host:
        try:
            ipaddress.IPv4Address(host)
        except ValueError:
            if ":" in host or not _HOSTNAME_RE.match(host):
                raise _invalid(f"bad host {host!r}") from None

    return ListenerSocket(host=host, port=int(port_text))
