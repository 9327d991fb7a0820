"""Vault identity resolution.

The identity is either inlined in the configuration document as ``UserID``
or read from a small JSON indirection file named by ``UserIDFile``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mfa_server.domain.errors import ConfigIOError, ConfigParseError, MissingCredentialError

logger = logging.getLogger(__name__)


class UserIdFile(BaseModel):
    """Contents of a credential indirection file: ``{"UserID": "..."}``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    user_id: str = Field(alias="UserID")


@dataclass(frozen=True)
class ResolvedCredential:
    """The vault user id and, when indirected, the file it came from."""
    user_id: str
    source_file: Optional[str] = None


def read_user_id_file(path: str | Path) -> str:
    """Read the user id out of an indirection file.

    Raises:
        ConfigIOError: If the file cannot be read.
        ConfigParseError: If the file is not JSON of the expected shape.
        MissingCredentialError: If the file holds an empty user id.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigIOError(f"Could not open UserId file at {path}: {e}", path=path) from e

    try:
        parsed = UserIdFile.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigParseError(f"UserId file {path} could not be parsed: {e}", path=path) from e

    if not parsed.user_id:
        raise MissingCredentialError(f"UserId file {path} does not define a UserID", path=path)
    return parsed.user_id


def resolve_credential(user_id: Optional[str], user_id_file: Optional[str]) -> ResolvedCredential:
    """Decide which vault identity to use.

    An inline, non-empty ``user_id`` wins and no file is touched. Otherwise
    ``user_id_file`` is read and its value adopted, keeping the path for
    provenance.

    Raises:
        MissingCredentialError: If neither source is supplied.
    """
    if user_id:
        return ResolvedCredential(user_id=user_id)
    if not user_id_file:
        raise MissingCredentialError(
            "Configuration does not define a UserID or UserIDFile to use to access Vault"
        )
    logger.debug("Resolving vault UserID from %s", user_id_file)
    return ResolvedCredential(user_id=read_user_id_file(user_id_file), source_file=user_id_file)
