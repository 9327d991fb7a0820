"""Server-side TLS keypair validation.

References:
    - RFC 7468 (textual encodings of PKIX structures)
    - RFC 5280 (X.509 PKI)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from mfa_server.domain.errors import InvalidKeyPairError
from mfa_server.domain.services.pem import read_pem_file, validate_pem_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedKeyPair:
    """Paths of a certificate and key that were checked to belong together."""
    certificate_file: str
    key_file: str
    certificate: x509.Certificate


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def validate_keypair(cert_path: str | Path, key_path: str | Path) -> ValidatedKeyPair:
    """Validate a certificate/private key pair for the listener.

    Both files must be a single PEM block each. The certificate must parse
    as X.509 and the private key, which must be unencrypted, must be the
    private half of the certificate's public key.

    Args:
        cert_path: PEM certificate file.
        key_path: PEM private key file.

    Returns:
        The validated pair.

    Raises:
        ConfigIOError: If either file is unreadable.
        InvalidPEMError: If either file is not exactly one PEM block.
        InvalidKeyPairError: If the pair does not load or does not match.
    """
    validate_pem_file(cert_path)
    validate_pem_file(key_path)

    def _fail(reason: str) -> InvalidKeyPairError:
        # Only paths and the parse error are reported, never file contents.
        logger.warning("TLS key pair rejected: cert=%s key=%s reason=%s", cert_path, key_path, reason)
        return InvalidKeyPairError(
            f"Key pair provided not valid (certificate {cert_path}, key {key_path}): {reason}",
            path=cert_path,
        )

    try:
        certificate = x509.load_pem_x509_certificate(read_pem_file(cert_path))
    except ValueError as e:
        raise _fail(f"certificate does not parse: {e}") from e

    try:
        private_key = serialization.load_pem_private_key(read_pem_file(key_path), password=None)
    except TypeError as e:
        raise _fail(f"private key is encrypted: {e}") from e
    except (ValueError, UnsupportedAlgorithm) as e:
        raise _fail(f"private key does not parse: {e}") from e

    try:
        matches = _public_key_der(private_key.public_key()) == _public_key_der(certificate.public_key())
    except (UnsupportedAlgorithm, ValueError) as e:
        raise _fail(f"public key cannot be compared: {e}") from e
    if not matches:
        raise _fail("private key does not match certificate public key")

    return ValidatedKeyPair(
        certificate_file=str(cert_path),
        key_file=str(key_path),
        certificate=certificate,
    )
