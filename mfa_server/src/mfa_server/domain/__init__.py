"""MFA server configuration domain layer."""

from mfa_server.domain.errors import (
    ConfigIOError,
    ConfigParseError,
    ConfigurationError,
    InvalidCertificateError,
    InvalidDirectorySettingsError,
    InvalidEndpointError,
    InvalidKeyPairError,
    InvalidListenerSocketError,
    InvalidLogLevelError,
    InvalidPEMError,
    MissingCredentialError,
)
from mfa_server.domain.services.credentials import ResolvedCredential, resolve_credential
from mfa_server.domain.services.directory import LDAPConnection, build_ldap_connection
from mfa_server.domain.services.tls import ValidatedKeyPair, validate_keypair
from mfa_server.domain.services.trust_store import (
    TrustStore,
    trust_store_from_certificate,
    trust_store_from_file,
)
from mfa_server.domain.value_objects.endpoint import LDAPEndpoint, LDAPScheme, parse_ldap_endpoint
from mfa_server.domain.value_objects.log_level import LogLevel, parse_log_level

__all__ = [
    # Errors
    "ConfigurationError",
    "ConfigIOError",
    "ConfigParseError",
    "InvalidLogLevelError",
    "InvalidEndpointError",
    "InvalidPEMError",
    "InvalidKeyPairError",
    "InvalidCertificateError",
    "MissingCredentialError",
    "InvalidListenerSocketError",
    "InvalidDirectorySettingsError",
    # Value objects
    "LDAPEndpoint",
    "LDAPScheme",
    "LogLevel",
    "parse_ldap_endpoint",
    "parse_log_level",
    # Services
    "LDAPConnection",
    "ResolvedCredential",
    "TrustStore",
    "ValidatedKeyPair",
    "build_ldap_connection",
    "resolve_credential",
    "trust_store_from_certificate",
    "trust_store_from_file",
    "validate_keypair",
]
