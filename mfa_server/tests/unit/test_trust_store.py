"""Unit tests for the certificate trust builder."""

import ssl

import pytest
from cryptography.hazmat.primitives import serialization

from mfa_server.domain.errors import ConfigIOError, InvalidCertificateError, InvalidPEMError
from mfa_server.domain.services.trust_store import trust_store_from_certificate, trust_store_from_file


@pytest.mark.unit
class TestTrustStoreFromFile:
    """Test building trust stores from CA files."""

    def test_single_certificate(self, ca_cert_file, ca_certificate):
        store = trust_store_from_file(ca_cert_file)
        assert store.certificate == ca_certificate
        assert store.source == str(ca_cert_file)

    def test_context_trusts_only_that_certificate(self, ca_cert_file, ca_certificate):
        context = trust_store_from_file(ca_cert_file).client_context()
        assert isinstance(context, ssl.SSLContext)
        assert context.verify_mode == ssl.CERT_REQUIRED
        ca_certs = context.get_ca_certs(binary_form=True)
        assert ca_certs == [ca_certificate.public_bytes(serialization.Encoding.DER)]

    def test_each_context_is_fresh(self, ca_cert_file):
        store = trust_store_from_file(ca_cert_file)
        assert store.client_context() is not store.client_context()

    def test_two_blocks_rejected(self, tmp_path, ca_cert_file):
        bundle = tmp_path / "bundle.pem"
        bundle.write_bytes(ca_cert_file.read_bytes() * 2)
        with pytest.raises(InvalidPEMError, match="Rest"):
            trust_store_from_file(bundle)

    def test_not_pem(self, tmp_path):
        path = tmp_path / "ca.pem"
        path.write_text("definitely not a certificate")
        with pytest.raises(InvalidCertificateError, match="Couldn't load PEM data"):
            trust_store_from_file(path)

    def test_private_key_rejected(self, tmp_path, tls_files):
        _, key_path = tls_files
        with pytest.raises(InvalidCertificateError, match="CERTIFICATE"):
            trust_store_from_file(key_path)

    def test_undecodable_certificate_body(self, tmp_path):
        path = tmp_path / "ca.pem"
        path.write_bytes(b"-----BEGIN CERTIFICATE-----\naGVsbG8=\n-----END CERTIFICATE-----\n")
        with pytest.raises(InvalidCertificateError):
            trust_store_from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigIOError) as exc_info:
            trust_store_from_file(tmp_path / "missing.pem")
        assert exc_info.value.path == str(tmp_path / "missing.pem")


@pytest.mark.unit
class TestTrustStoreFromCertificate:
    """Test building trust stores from certificate objects and bytes."""

    def test_certificate_object(self, ca_certificate):
        store = trust_store_from_certificate(ca_certificate)
        assert store.certificate is ca_certificate
        assert store.source is None

    def test_der_bytes(self, ca_certificate):
        der = ca_certificate.public_bytes(serialization.Encoding.DER)
        assert trust_store_from_certificate(der).der == der

    def test_pem_bytes(self, ca_certificate):
        pem = ca_certificate.public_bytes(serialization.Encoding.PEM)
        assert trust_store_from_certificate(pem).certificate == ca_certificate

    def test_empty_bytes(self):
        with pytest.raises(InvalidCertificateError, match="empty"):
            trust_store_from_certificate(b"")

    def test_garbage_bytes(self):
        with pytest.raises(InvalidCertificateError, match="does not decode"):
            trust_store_from_certificate(b"\x30\x03\x02\x01")
