"""Vault client configuration and materialization.

The bootstrap pipeline only records where vault lives, which CA to trust
and which identity to log in as. ``VaultClientConfig.create_client`` turns
that into an ``httpx.Client`` for the secret-access code.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

import httpx

from mfa_server.domain.services.trust_store import TrustStore

DEFAULT_VAULT_ADDRESS = "https://127.0.0.1:8200"
DEFAULT_VAULT_TIMEOUT = 60.0

VAULT_TOKEN_HEADER = "X-Vault-Token"


@dataclass(frozen=True)
class VaultLogin:
    """Identity material used to authenticate against vault."""
    user_id: Optional[str] = None
    app_id_read: Optional[str] = None
    app_id_write: Optional[str] = None


@dataclass(frozen=True)
class VaultClientConfig:
    """Derived vault client settings."""
    address: str = DEFAULT_VAULT_ADDRESS
    trust_store: Optional[TrustStore] = None
    timeout: float = DEFAULT_VAULT_TIMEOUT

    def with_address(self, address: str) -> VaultClientConfig:
        return replace(self, address=address)

    def with_trust_store(self, trust_store: Optional[TrustStore]) -> VaultClientConfig:
        return replace(self, trust_store=trust_store)

    def transport(self) -> httpx.HTTPTransport:
        """HTTP transport for vault traffic.

        With a trust store, TLS peers are only trusted if they chain to that
        CA. Without one the httpx defaults apply.
        """
        if self.trust_store is None:
            return httpx.HTTPTransport()
        return httpx.HTTPTransport(verify=self.trust_store.client_context())

    def create_client(self, token: Optional[str] = None) -> httpx.Client:
        """Create an HTTP client for the vault API rooted at ``address``."""
        headers = {}
        if token:
            headers[VAULT_TOKEN_HEADER] = token
        return httpx.Client(
            base_url=self.address,
            headers=headers,
            timeout=self.timeout,
            transport=self.transport(),
        )
