"""
ledger_config -- single public entrypoint for ledger settings.

Responsibility:
    ``get_settings()`` is the only way runtime code obtains configuration.
    It reads an optional YAML file (argument or ``LEDGER_CONFIG``), applies
    ``LEDGER_DATABASE_URL`` / ``LEDGER_LOG_LEVEL`` overrides and returns a
    frozen ``LedgerSettings``.

Architecture position:
    Configuration.  Sits above ``ledger_kernel``; the kernel never imports
    this package.  ``ledger_config.bridges`` turns settings into kernel
    objects.

Failure modes:
    - ``FileNotFoundError`` -- the named file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- unknown keys or malformed values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from ledger_config.loader import load_settings
from ledger_config.schema import LedgerSettings

__all__ = ["LedgerSettings", "get_settings"]

_logger = logging.getLogger("ledger_kernel.config")


def get_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Load the active settings.

    Args:
        path: YAML file to read.  Defaults to ``$LEDGER_CONFIG`` if set,
            otherwise built-in defaults are used.
        environ: Environment mapping, ``os.environ`` by default.
    """
    env = os.environ if environ is None else environ
    settings = load_settings(Path(path) if path is not None else None, env)
    _logger.info(
        "settings_loaded",
        extra={
            "config_path": str(path) if path is not None else env.get("LEDGER_CONFIG"),
            "log_level": settings.log_level,
            "dialect": settings.database_url.split(":", 1)[0],
        },
    )
    return settings
