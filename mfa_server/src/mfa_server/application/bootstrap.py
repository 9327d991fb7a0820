"""Configuration bootstrap pipeline.

Runs the fixed sequence that turns a configuration file into a validated
``Configuration``:

    read document -> logging -> vault connection -> vault credential
        -> listener TLS -> directory connection

The first failing step aborts the load. Its error is re-raised with the step
name attached; no partially configured object is returned.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from mfa_server.domain.errors import ConfigurationError
from mfa_server.infrastructure.config import Configuration, get_settings

logger = logging.getLogger(__name__)

Step = Callable[[Configuration], Configuration]

PIPELINE: list[tuple[str, Step]] = [
    ("Configuration failed in setting up logging", Configuration.configure_logging),
    ("Configuration failed in setting up the vault connection", Configuration.configure_vault_connection),
    ("Configuration issue with the vault UserID", Configuration.resolve_vault_credential),
    ("TLS configuration for MFA Server not valid", Configuration.configure_tls),
    ("Error configuring LDAP connection", Configuration.configure_directory),
]


def _run_step(step: str, fn: Callable[[], Configuration]) -> Configuration:
    try:
        return fn()
    except ConfigurationError as e:
        e.step = step
        logger.error("Configuration load aborted at %r: %s", step, e.message)
        raise


def load(path: Optional[str | Path] = None) -> Configuration:
    """Load and validate the MFA server configuration.

    Args:
        path: Configuration document. Defaults to the ``config_path``
            bootstrap setting (``MFASERVER_CONFIG_PATH``).

    Returns:
        A fully validated configuration.

    Raises:
        ConfigurationError: The first error raised by any step, with
            ``step`` set to the failing step.
    """
    cfg_path = Path(path) if path is not None else get_settings().config_path

    config = _run_step(
        "Configuration file could not be loaded",
        lambda: Configuration.from_file(cfg_path),
    )
    for step, fn in PIPELINE:
        config = _run_step(step, lambda: fn(config))
        config.server.loggers.debug.msg("configuration step complete", step=step)

    config.server.loggers.info.msg("configuration loaded", path=str(cfg_path))
    return config
