"""
approval_config -- single public entrypoint for approval configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- YAML-driven.  This package sits above
    ``approval_kernel``; the kernel MUST NEVER import from it.  Bridges in
    this package translate configuration into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - A configuration set is validated before it is returned.
    - ``APPROVAL_DATABASE_URL``, when set, overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- no such configuration set.
    - ``ValueError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``APPROVAL_CONFIG_TRACE`` log entry with the config id, version,
    checksum and template summary.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from approval_config.loader import load_configuration
from approval_config.schema import ApprovalConfiguration
from approval_config.validator import validate_configuration

_logger = logging.getLogger("approval_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

_CONFIG_FILE_NAME = "approval.yaml"
DATABASE_URL_ENV = "APPROVAL_DATABASE_URL"


def get_active_config(
    config_set: str = "default",
    config_dir: Path | None = None,
) -> ApprovalConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        config_set: Name of the configuration set subdirectory.
        config_dir: Override path to the configuration sets directory.
            Defaults to approval_config/sets/.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If configuration validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / config_set / _CONFIG_FILE_NAME
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_configuration(path)

    override_url = os.environ.get(DATABASE_URL_ENV)
    if override_url:
        config = replace(config, database=replace(config.database, url=override_url))

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("approval_config_warning", extra={"detail": warning})

    _logger.info(
        "APPROVAL_CONFIG_TRACE",
        extra={
            "trace_type": "APPROVAL_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "database_url_overridden": bool(override_url),
            "template_count": len(config.chain_templates),
            "document_types": [t.document_type for t in config.chain_templates],
        },
    )

    return config


__all__ = ["get_active_config", "ApprovalConfiguration", "DATABASE_URL_ENV"]
