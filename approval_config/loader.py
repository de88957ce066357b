"""
Configuration Loader (``approval_config.loader``).

Responsibility
--------------
Loads a configuration set YAML file and parses it into typed
``approval_config.schema`` dataclass instances.  Runtime callers go
through ``approval_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    ApprovalConfiguration,
    ChainLevelDef,
    ChainTemplateDef,
    DatabaseSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    """Parse DatabaseSettings from a dict."""
    return DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        pool_recycle=int(data.get("pool_recycle", 1800)),
    )


def parse_level(data: dict[str, Any]) -> ChainLevelDef:
    order = data["order"]
    if isinstance(order, bool) or not isinstance(order, int):
        raise ValueError(f"Level order must be an integer, got {order!r}")
    return ChainLevelDef(
        order=order,
        display_name=str(data["display_name"]),
        approver=str(data["approver"]),
        is_required=bool(data.get("is_required", True)),
    )


def parse_template(data: dict[str, Any]) -> ChainTemplateDef:
    """Parse a ChainTemplateDef, keeping levels in file order."""
    return ChainTemplateDef(
        document_type=str(data["document_type"]),
        name=str(data["name"]),
        levels=tuple(parse_level(level) for level in data.get("levels") or ()),
        description=data.get("description"),
        is_active=bool(data.get("is_active", True)),
    )


def parse_configuration(data: dict[str, Any]) -> ApprovalConfiguration:
    """Parse a full configuration set from its raw YAML document."""
    return ApprovalConfiguration(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        database=parse_database(data["database"]),
        chain_templates=tuple(
            parse_template(template) for template in data.get("chain_templates") or ()
        ),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> ApprovalConfiguration:
    """Load and parse a configuration set file."""
    return parse_configuration(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
