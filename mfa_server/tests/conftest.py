"""Pytest configuration and shared fixtures for MFA server configuration tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from mfa_server.infrastructure.config import get_settings


def make_certificate(private_key, common_name: str) -> x509.Certificate:
    """Self-signed CA certificate for ``private_key``."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def key_pem(private_key) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from the caller's vault/bootstrap environment."""
    for var in ("VAULT_ADDR", "MFASERVER_VAULT_ADDR", "MFASERVER_CONFIG_PATH"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def certificate_factory():
    """Build self-signed certificates for arbitrary keys."""
    return make_certificate


@pytest.fixture(scope="session")
def ca_certificate(rsa_key) -> x509.Certificate:
    return make_certificate(rsa_key, "MFA Test CA")


@pytest.fixture
def ca_cert_file(tmp_path: Path, ca_certificate) -> Path:
    path = tmp_path / "ca.pem"
    path.write_bytes(cert_pem(ca_certificate))
    return path


@pytest.fixture
def tls_files(tmp_path: Path, rsa_key, ca_certificate) -> tuple[Path, Path]:
    """Matching certificate and key files for the listener."""
    cert_path = tmp_path / "server.crt"
    key_path = tmp_path / "server.key"
    cert_path.write_bytes(cert_pem(ca_certificate))
    key_path.write_bytes(key_pem(rsa_key))
    return cert_path, key_path


@pytest.fixture
def user_id_file(tmp_path: Path) -> Path:
    path = tmp_path / "userid.json"
    path.write_text(json.dumps({"UserID": "bob"}))
    return path


@pytest.fixture
def base_document(tmp_path: Path) -> dict:
    """A minimal document that loads cleanly."""
    return {
        "Vault": {
            "VaultConnection": {"EndPoint": "https://vault.example.com:8200"},
            "UserID": "alice",
        },
        "MFAServer": {
            "ListenerSocket": "127.0.0.1:8443",
            "TLS": {"Enabled": False},
            "LogFile": str(tmp_path / "mfa.log"),
            "LogLevel": "INFO",
            "LogFormat": "json",
        },
        "LDAP": {
            "EndPoint": "ldap://ldap.example.com",
            "UserDN": "uid={username},ou=users,dc=example,dc=com",
        },
    }


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a document to config.json and return its path."""
    def _write(document: dict) -> Path:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(document))
        return path
    return _write


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
