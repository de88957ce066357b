"""
ApprovalConfiguration schema.

Defines the human-authored, reviewable source artifact for approval
configuration.  YAML files are parsed into these types by the loader,
checked by the validator, and translated into kernel inputs by the
bridges.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class ChainLevelDef:
    """One level of a configured approval chain."""

    order: int
    display_name: str
    approver: str
    is_required: bool = True


@dataclass(frozen=True)
class ChainTemplateDef:
    """Configured approval chain for one document type."""

    document_type: str
    name: str
    levels: tuple[ChainLevelDef, ...] = ()
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class ApprovalConfiguration:
    """A complete configuration set: database plus chain templates."""

    config_id: str
    version: int
    database: DatabaseSettings
    chain_templates: tuple[ChainTemplateDef, ...] = ()
    checksum: str = ""

    def template_for(self, document_type: str) -> ChainTemplateDef | None:
        for template in self.chain_templates:
            if template.document_type == document_type:
                return template
        return None
