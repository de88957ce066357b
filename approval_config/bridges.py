"""
Bridges from configuration artifacts to kernel inputs.

The kernel never imports ``approval_config``; these functions translate
parsed configuration into kernel domain types and engine arguments.
"""

from __future__ import annotations

from typing import Any

from approval_config.schema import ApprovalConfiguration, ChainTemplateDef
from approval_kernel.domain.approval import ChainLevel, ChainTemplate, DocumentType


def to_chain_template(definition: ChainTemplateDef) -> ChainTemplate:
    return ChainTemplate(
        document_type=DocumentType(definition.document_type),
        name=definition.name,
        levels=tuple(
            ChainLevel(
                order=level.order,
                display_name=level.display_name,
                approver=level.approver,
                is_required=level.is_required,
            )
            for level in sorted(definition.levels, key=lambda lvl: lvl.order)
        ),
        description=definition.description,
        is_active=definition.is_active,
    )


def to_chain_templates(config: ApprovalConfiguration) -> tuple[ChainTemplate, ...]:
    """All configured chain templates as kernel ChainTemplate values."""
    return tuple(to_chain_template(t) for t in config.chain_templates)


def engine_kwargs(config: ApprovalConfiguration) -> dict[str, Any]:
    """Keyword arguments for ``approval_kernel.db.engine.init_engine_from_url``."""
    db = config.database
    return {
        "database_url": db.url,
        "echo": db.echo,
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
    }
