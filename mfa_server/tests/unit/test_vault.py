"""Unit tests for vault client configuration."""

import ssl

import httpx
import pytest

from mfa_server.adapters.outbound import vault as vault_module
from mfa_server.adapters.outbound.vault import (
    DEFAULT_VAULT_ADDRESS,
    VAULT_TOKEN_HEADER,
    VaultClientConfig,
)
from mfa_server.domain.services.trust_store import trust_store_from_file


@pytest.mark.unit
class TestVaultClientConfig:
    """Test derived vault client settings."""

    def test_defaults(self):
        client_config = VaultClientConfig()
        assert client_config.address == DEFAULT_VAULT_ADDRESS
        assert client_config.trust_store is None

    def test_with_address_keeps_trust_store(self, ca_cert_file):
        store = trust_store_from_file(ca_cert_file)
        client_config = VaultClientConfig(trust_store=store).with_address("https://new:8200")
        assert client_config.address == "https://new:8200"
        assert client_config.trust_store is store

    def test_with_trust_store_replaces(self, ca_cert_file, tmp_path):
        first = trust_store_from_file(ca_cert_file)
        other = tmp_path / "other.pem"
        other.write_bytes(ca_cert_file.read_bytes())
        second = trust_store_from_file(other)
        client_config = VaultClientConfig(trust_store=first).with_trust_store(second)
        assert client_config.trust_store is second

    def test_transport_uses_trust_store_context(self, ca_cert_file, monkeypatch):
        calls = []

        def fake_transport(**kwargs):
            calls.append(kwargs)
            return httpx.MockTransport(lambda request: httpx.Response(200))

        monkeypatch.setattr(vault_module.httpx, "HTTPTransport", fake_transport)
        VaultClientConfig(trust_store=trust_store_from_file(ca_cert_file)).transport()

        assert len(calls) == 1
        context = calls[0]["verify"]
        assert isinstance(context, ssl.SSLContext)
        assert len(context.get_ca_certs()) == 1

    def test_transport_without_trust_store(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            vault_module.httpx, "HTTPTransport", lambda **kwargs: calls.append(kwargs) or httpx.MockTransport(None)
        )
        VaultClientConfig().transport()
        assert calls == [{}]

    def test_create_client(self):
        client = VaultClientConfig(address="https://vault.example.com:8200").create_client(token="s.token")
        try:
            assert str(client.base_url).rstrip("/") == "https://vault.example.com:8200"
            assert client.headers[VAULT_TOKEN_HEADER] == "s.token"
        finally:
            client.close()

    def test_create_client_without_token(self):
        client = VaultClientConfig().create_client()
        try:
            assert VAULT_TOKEN_HEADER not in client.headers
        finally:
            client.close()
