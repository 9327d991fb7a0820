"""Configuration management for the MFA server.

The configuration is a JSON document with three sections (``Vault``,
``MFAServer`` and ``LDAP``) modelled with pydantic. Fields absent from the
document keep their defaults and unknown keys are ignored. Handles derived
during validation (loggers, vault client settings, the directory connection
descriptor, the validated TLS keypair) live as private attributes on the
section that owns them.

A ``Configuration`` is never modified in place. All models are frozen, so
unchanged sections can be shared between instances. Every ``with_*`` call and
every pipeline step validates first and then returns a new instance, so a
failed call leaves the original untouched.
"""

from __future__ import annotations

import ssl
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mfa_server.adapters.outbound.vault import (
    DEFAULT_VAULT_ADDRESS,
    VaultClientConfig,
    VaultLogin,
)
from mfa_server.domain.errors import (
    ConfigIOError,
    ConfigParseError,
    InvalidDirectorySettingsError,
    InvalidKeyPairError,
    MissingCredentialError,
)
from mfa_server.domain.services.credentials import read_user_id_file, resolve_credential
from mfa_server.domain.services.directory import (
    USERNAME_PLACEHOLDER,
    LDAPConnection,
    build_ldap_connection,
    render_dn_template,
)
from mfa_server.domain.services.tls import ValidatedKeyPair, validate_keypair
from mfa_server.domain.services.trust_store import (
    CertificateInput,
    trust_store_from_certificate,
    trust_store_from_file,
)
from mfa_server.domain.value_objects.listener import parse_listener_socket
from mfa_server.domain.value_objects.log_level import LogLevel, parse_log_level
from mfa_server.infrastructure.logging import Loggers, LogSink, setup_loggers

DEFAULT_SECRETS_PATH = "secret/mfa"
DEFAULT_LISTENER_SOCKET = "0.0.0.0:8443"
DEFAULT_CONFIG_PATH = Path("/etc/mfaserver/config.json")


class BootstrapSettings(BaseSettings):
    """Process-level settings read from the environment."""

    model_config = SettingsConfigDict(env_prefix="MFASERVER_")

    config_path: Path = Field(default=DEFAULT_CONFIG_PATH)
    vault_addr: str = Field(
        default=DEFAULT_VAULT_ADDRESS,
        validation_alias=AliasChoices("MFASERVER_VAULT_ADDR", "VAULT_ADDR"),
    )


@lru_cache
def get_settings() -> BootstrapSettings:
    """Get cached bootstrap settings."""
    return BootstrapSettings()


def _default_vault_address() -> str:
    return get_settings().vault_addr


_SECTION_CONFIG = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


def _require_vault_endpoint(end_point: Optional[str]) -> str:
    if not end_point:
        raise ConfigParseError("Vault VaultConnection EndPoint is not defined")
    return end_point


class VaultConnection(BaseModel):
    """Vault REST endpoint and optional CA to trust for it."""

    model_config = _SECTION_CONFIG

    end_point: Optional[str] = Field(default_factory=_default_vault_address, alias="EndPoint")
    trust_ca_cert: Optional[str] = Field(default=None, alias="TrustCACert")


class VaultConfig(BaseModel):
    """Vault section."""

    model_config = _SECTION_CONFIG

    connection: VaultConnection = Field(default_factory=VaultConnection, alias="VaultConnection")
    app_id_read: Optional[str] = Field(default=None, alias="AppIDRead")
    app_id_write: Optional[str] = Field(default=None, alias="AppIDWrite")
    user_id_file: Optional[str] = Field(default=None, alias="UserIDFile")
    user_id: Optional[str] = Field(default=None, alias="UserID")
    mfa_secrets_path: Optional[str] = Field(default=DEFAULT_SECRETS_PATH, alias="MFASecretsPath")

    _client_config: VaultClientConfig = PrivateAttr(
        default_factory=lambda: VaultClientConfig(address=_default_vault_address())
    )

    @property
    def client_config(self) -> VaultClientConfig:
        return self._client_config

    @property
    def login(self) -> VaultLogin:
        return VaultLogin(
            user_id=self.user_id,
            app_id_read=self.app_id_read,
            app_id_write=self.app_id_write,
        )


class TLSSettings(BaseModel):
    """Listener TLS settings."""

    model_config = _SECTION_CONFIG

    enabled: bool = Field(default=False, alias="Enabled")
    certificate_file: Optional[str] = Field(default=None, alias="CertificateFile")
    key_file: Optional[str] = Field(default=None, alias="KeyFile")


class ServerConfig(BaseModel):
    """MFAServer section."""

    model_config = _SECTION_CONFIG

    listener_socket: Optional[str] = Field(default=DEFAULT_LISTENER_SOCKET, alias="ListenerSocket")
    tls: TLSSettings = Field(default_factory=TLSSettings, alias="TLS")
    log_file: Optional[str] = Field(default=None, alias="LogFile")
    log_level: Optional[str] = Field(default=None, alias="LogLevel")
    log_format: Literal["console", "json"] = Field(default="console", alias="LogFormat")

    _loggers: Loggers = PrivateAttr(default_factory=Loggers.discarding)
    _log_sink: Optional[LogSink] = PrivateAttr(default=None)
    _keypair: Optional[ValidatedKeyPair] = PrivateAttr(default=None)

    @property
    def loggers(self) -> Loggers:
        return self._loggers

    @property
    def keypair(self) -> Optional[ValidatedKeyPair]:
        return self._keypair

    def server_ssl_context(self) -> Optional[ssl.SSLContext]:
        """Listener TLS context, or None when TLS is disabled."""
        if not self.tls.enabled or self._keypair is None:
            return None
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(self._keypair.certificate_file, self._keypair.key_file)
        return context


class DirectoryConfig(BaseModel):
    """LDAP section."""

    model_config = _SECTION_CONFIG

    end_point: Optional[str] = Field(default=None, alias="EndPoint")
    trust_ca_cert: Optional[str] = Field(default=None, alias="TrustCACert")
    user_dn: Optional[str] = Field(default=None, alias="UserDN")
    admin_group_dn: Optional[str] = Field(default=None, alias="AdminGroupDN")
    admin_membership_attr: Optional[str] = Field(default=None, alias="AdminGroupMembershipAttribute")
    admin_member_dn_format: Optional[str] = Field(default=None, alias="AdminGroupMemberDNFormat")

    _connection: Optional[LDAPConnection] = PrivateAttr(default=None)

    @property
    def connection(self) -> Optional[LDAPConnection]:
        return self._connection

    def user_dn_for(self, username: str) -> str:
        if not self.user_dn:
            raise InvalidDirectorySettingsError("LDAP UserDN is not defined")
        return render_dn_template(self.user_dn, username)

    def admin_member_dn(self, username: str) -> str:
        if not self.admin_member_dn_format:
            raise InvalidDirectorySettingsError("LDAP AdminGroupMemberDNFormat is not defined")
        return render_dn_template(self.admin_member_dn_format, username)


def _check_member_dn_format(member_dn_format: Optional[str]) -> None:
    if member_dn_format is not None and USERNAME_PLACEHOLDER not in member_dn_format:
        raise InvalidDirectorySettingsError(
            f"AdminGroupMemberDNFormat must contain {USERNAME_PLACEHOLDER}: {member_dn_format!r}"
        )


class Configuration(BaseModel):
    """Root configuration aggregate."""

    model_config = _SECTION_CONFIG

    vault: VaultConfig = Field(default_factory=VaultConfig, alias="Vault")
    server: ServerConfig = Field(default_factory=ServerConfig, alias="MFAServer")
    ldap: DirectoryConfig = Field(default_factory=DirectoryConfig, alias="LDAP")

    @classmethod
    def defaults(cls) -> Configuration:
        """A configuration skeleton with safe defaults and discarding loggers."""
        return cls()

    @classmethod
    def from_json(cls, document: str | bytes, source: Optional[str] = None) -> Configuration:
        """Overlay a JSON document onto the defaults.

        Raises:
            ConfigParseError: If the document is malformed.
        """
        try:
            return cls.model_validate_json(document)
        except ValidationError as e:
            raise ConfigParseError(f"Configuration file could not be parsed: {e}", path=source) from e

    @classmethod
    def from_file(cls, path: str | Path) -> Configuration:
        """Read and deserialize a configuration document.

        Raises:
            ConfigIOError: If the file cannot be read.
            ConfigParseError: If the document is malformed.
        """
        try:
            document = Path(path).read_bytes()
        except OSError as e:
            raise ConfigIOError(f"Configuration file could not be opened: {path} {e}", path=path) from e
        return cls.from_json(document, source=str(path))

    def _replace(
        self,
        vault: Optional[VaultConfig] = None,
        server: Optional[ServerConfig] = None,
        ldap: Optional[DirectoryConfig] = None,
    ) -> Configuration:
        # Each configuration gets its own logger handles.
        server = (server or self.server).model_copy()
        server._loggers = server._loggers.rebound()
        return self.model_copy(
            update={
                "vault": vault or self.vault,
                "server": server,
                "ldap": ldap or self.ldap,
            }
        )

    # Pipeline steps

    def configure_logging(self) -> Configuration:
        """Open the log destination and bind the leveled loggers.

        Raises:
            InvalidLogLevelError: If no or an unknown log level is configured.
            ConfigIOError: If the log file cannot be opened.
        """
        level = parse_log_level(self.server.log_level)
        return self._replace(server=self._server_with_loggers(self.server, level))

    def _server_with_loggers(self, server: ServerConfig, level: LogLevel) -> ServerConfig:
        loggers, sink = setup_loggers(level, server.log_file, server.log_format, self.server._log_sink)
        server = server.model_copy()
        server._loggers = loggers
        server._log_sink = sink
        return server

    def configure_vault_connection(self) -> Configuration:
        """Derive vault client settings from the VaultConnection block.

        Raises:
            ConfigParseError: If no vault endpoint is configured.
            ConfigIOError, InvalidCertificateError, InvalidPEMError: If the
                configured CA file cannot be used.
        """
        connection = self.vault.connection
        client_config = self.vault.client_config.with_address(_require_vault_endpoint(connection.end_point))
        if connection.trust_ca_cert:
            client_config = client_config.with_trust_store(trust_store_from_file(connection.trust_ca_cert))
        return self._replace(vault=self._vault_with_client(self.vault, client_config))

    @staticmethod
    def _vault_with_client(vault: VaultConfig, client_config: VaultClientConfig) -> VaultConfig:
        vault = vault.model_copy()
        vault._client_config = client_config
        return vault

    def resolve_vault_credential(self) -> Configuration:
        """Settle the vault user id, reading UserIDFile if needed.

        Raises:
            MissingCredentialError: If there is neither UserID nor UserIDFile.
            ConfigIOError, ConfigParseError: If UserIDFile cannot be used.
        """
        credential = resolve_credential(self.vault.user_id, self.vault.user_id_file)
        update = {"user_id": credential.user_id}
        if credential.source_file is not None:
            update["user_id_file"] = credential.source_file
        return self._replace(vault=self.vault.model_copy(update=update))

    def configure_tls(self) -> Configuration:
        """Validate the listener keypair when TLS is enabled.

        Files are not touched while TLS is disabled.
        """
        tls = self.server.tls
        if not tls.enabled:
            return self
        if not tls.certificate_file or not tls.key_file:
            raise InvalidKeyPairError("TLS is enabled but CertificateFile or KeyFile is not set")
        return self.with_tls(tls.certificate_file, tls.key_file)

    def configure_directory(self) -> Configuration:
        """Parse the LDAP endpoint and build the connection descriptor.

        Raises:
            InvalidEndpointError: If the endpoint is missing or malformed.
            InvalidCertificateError, InvalidPEMError, ConfigIOError: If the
                ldaps CA file cannot be used.
            InvalidDirectorySettingsError: If the admin member DN format has
                no username placeholder.
        """
        _check_member_dn_format(self.ldap.admin_member_dn_format)
        ldap = self.ldap.model_copy()
        ldap._connection = build_ldap_connection(ldap.end_point, ldap.trust_ca_cert)
        return self._replace(ldap=ldap)

    # Vault mutators

    def with_vault_user_id(self, user_id: str) -> Configuration:
        if not user_id:
            raise MissingCredentialError("An empty vault UserID was provided")
        return self._replace(vault=self.vault.model_copy(update={"user_id": user_id}))

    def with_vault_user_id_file(self, path: str) -> Configuration:
        """Adopt the user id held in ``path``, keeping the path for provenance."""
        user_id = read_user_id_file(path)
        return self._replace(
            vault=self.vault.model_copy(update={"user_id": user_id, "user_id_file": path})
        )

    def with_vault_app_id_read(self, app_id: str) -> Configuration:
        return self._replace(vault=self.vault.model_copy(update={"app_id_read": app_id}))

    def with_vault_app_id_write(self, app_id: str) -> Configuration:
        return self._replace(vault=self.vault.model_copy(update={"app_id_write": app_id}))

    def with_vault_endpoint(self, end_point: str) -> Configuration:
        """Point the vault client at a new address, keeping its trust store.

        Raises:
            ConfigParseError: If ``end_point`` is empty.
        """
        _require_vault_endpoint(end_point)
        connection = self.vault.connection.model_copy(update={"end_point": end_point})
        vault = self.vault.model_copy(update={"connection": connection})
        return self._replace(
            vault=self._vault_with_client(vault, self.vault.client_config.with_address(end_point))
        )

    def with_vault_mfa_secrets_path(self, path: str) -> Configuration:
        return self._replace(vault=self.vault.model_copy(update={"mfa_secrets_path": path}))

    def with_vault_client_config(self, client_config: VaultClientConfig) -> Configuration:
        """Replace the derived vault client settings wholesale."""
        return self._replace(vault=self._vault_with_client(self.vault, client_config))

    def with_vault_ca_cert(self, cert: CertificateInput) -> Configuration:
        """Trust exactly ``cert`` for vault, replacing any previous CA."""
        trust_store = trust_store_from_certificate(cert)
        trust_store.client_context()
        return self._replace(
            vault=self._vault_with_client(self.vault, self.vault.client_config.with_trust_store(trust_store))
        )

    def with_vault_ca_file_path(self, ca_path: str) -> Configuration:
        """Trust exactly the CA in ``ca_path`` for vault, replacing any previous CA."""
        trust_store = trust_store_from_file(ca_path)
        trust_store.client_context()
        connection = self.vault.connection.model_copy(update={"trust_ca_cert": ca_path})
        vault = self.vault.model_copy(update={"connection": connection})
        return self._replace(
            vault=self._vault_with_client(vault, self.vault.client_config.with_trust_store(trust_store))
        )

    # Server mutators

    def with_listener_socket(self, socket: str) -> Configuration:
        parse_listener_socket(socket)
        return self._replace(server=self.server.model_copy(update={"listener_socket": socket}))

    def with_tls(self, cert_path: str, key_path: str) -> Configuration:
        """Validate a keypair and enable listener TLS with it."""
        keypair = validate_keypair(cert_path, key_path)
        server = self.server.model_copy(
            update={"tls": TLSSettings(enabled=True, certificate_file=cert_path, key_file=key_path)}
        )
        server._keypair = keypair
        return self._replace(server=server)

    def with_log_level(self, level: str) -> Configuration:
        """Change the log level and rebind the leveled loggers."""
        parsed = parse_log_level(level)
        server = self.server.model_copy(update={"log_level": level})
        return self._replace(server=self._server_with_loggers(server, parsed))

    def with_log_file(self, path: Optional[str]) -> Configuration:
        """Change the log destination.

        Loggers are rebound immediately when a log level is already set,
        otherwise the path is recorded for the next logging setup.
        """
        server = self.server.model_copy(update={"log_file": path})
        if self.server.log_level is None:
            return self._replace(server=server)
        return self._replace(server=self._server_with_loggers(server, parse_log_level(self.server.log_level)))

    # Directory mutators

    def with_ldap_connection(self, end_point: str, trust_ca_cert: Optional[str], user_dn: str) -> Configuration:
        ldap = self.ldap.model_copy(
            update={"end_point": end_point, "trust_ca_cert": trust_ca_cert, "user_dn": user_dn}
        )
        ldap._connection = build_ldap_connection(end_point, trust_ca_cert)
        return self._replace(ldap=ldap)

    def with_ldap_admin_settings(
        self, group_dn: str, membership_attr: str, member_dn_format: str
    ) -> Configuration:
        _check_member_dn_format(member_dn_format)
        ldap = self.ldap.model_copy(
            update={
                "admin_group_dn": group_dn,
                "admin_membership_attr": membership_attr,
                "admin_member_dn_format": member_dn_format,
            }
        )
        return self._replace(ldap=ldap)
