"""Explicit CA trust stores for outbound TLS.

A trust store holds exactly one CA certificate. The TLS client context built
from it never loads the system roots, so a connection is only trusted if the
peer chains to that certificate. Building a new store always replaces the
previous one on the owning configuration.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from mfa_server.domain.errors import InvalidCertificateError, InvalidPEMError
from mfa_server.domain.services.pem import decode_pem, read_pem_file

logger = logging.getLogger(__name__)

CertificateInput = Union[x509.Certificate, bytes]


@dataclass(frozen=True)
class TrustStore:
    """A single trusted CA certificate and where it came from."""
    certificate: x509.Certificate
    source: Optional[str] = None

    @property
    def der(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.DER)

    def client_context(self) -> ssl.SSLContext:
        """Build a TLS client context trusting only this certificate."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        try:
            context.load_verify_locations(cadata=self.der)
        except ssl.SSLError as e:
            raise InvalidCertificateError(
                f"Couldn't load certificate into trust store: {e}", path=self.source
            ) from e
        return context


def trust_store_from_certificate(cert: CertificateInput) -> TrustStore:
    """Build a trust store from a certificate object or its encoded bytes.

    Raises:
        InvalidCertificateError: If the certificate has no encoded bytes or
            the bytes do not decode.
    """
    if isinstance(cert, x509.Certificate):
        der = cert.public_bytes(serialization.Encoding.DER)
        if not der:
            raise InvalidCertificateError("Certificate provided is empty")
        return TrustStore(certificate=cert)

    if not cert:
        raise InvalidCertificateError("Certificate provided is empty")
    try:
        if cert.lstrip().startswith(b"-----BEGIN"):
            certificate = x509.load_pem_x509_certificate(cert)
        else:
            certificate = x509.load_der_x509_certificate(cert)
    except ValueError as e:
        raise InvalidCertificateError(f"Certificate provided does not decode: {e}") from e
    return TrustStore(certificate=certificate)


def trust_store_from_file(ca_path: str | Path) -> TrustStore:
    """Build a trust store from a CA certificate PEM file.

    Raises:
        ConfigIOError: If the file cannot be read.
        InvalidCertificateError: If the file holds no PEM certificate.
        InvalidPEMError: If anything follows the certificate block.
    """
    pem_data = read_pem_file(ca_path)
    block, rest = decode_pem(pem_data)
    if block is None:
        raise InvalidCertificateError(f"Couldn't load PEM data from {ca_path}", path=ca_path)
    if rest.strip():
        raise InvalidPEMError(
            f"Not valid PEM format in {ca_path}: Rest: {len(rest.strip())} Type: {block.type!r}",
            path=ca_path,
        )
    if block.type != "CERTIFICATE":
        raise InvalidCertificateError(
            f"Expected a CERTIFICATE block in {ca_path}, found {block.type!r}", path=ca_path
        )
    try:
        certificate = x509.load_der_x509_certificate(block.data)
    except ValueError as e:
        raise InvalidCertificateError(f"Couldn't parse certificate in {ca_path}: {e}", path=ca_path) from e

    logger.debug("Loaded CA certificate %s from %s", certificate.subject.rfc4514_string(), ca_path)
    return TrustStore(certificate=certificate, source=str(ca_path))
