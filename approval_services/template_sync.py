"""
approval_services.template_sync -- Apply configured chains to the store.

Responsibility:
    Compares configured chain templates with the template store and
    creates or replaces levels where they differ.  Used by the operator
    script ``scripts/sync_chain_templates.py``.

Invariants enforced:
    - Existing approval requests are never touched; only templates change.
    - A dry run reads the store and reports the plan without writing.
    - A template's levels and active flag change in one transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from approval_kernel.domain.approval import ChainTemplate
from approval_kernel.logging_config import get_logger
from approval_services.engine import ApprovalEngine

logger = get_logger("services.template_sync")


class SyncAction(str, Enum):
    CREATE = "CREATE"
    REPLACE = "REPLACE"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class SyncResult:
    document_type: str
    action: SyncAction
    level_count: int


def _same_chain(current: ChainTemplate, desired: ChainTemplate) -> bool:
    return (
        current.name == desired.name
        and current.description == desired.description
        and current.levels == desired.levels
        and current.is_active == desired.is_active
    )


def sync_chain_templates(
    engine: ApprovalEngine,
    templates: Sequence[ChainTemplate],
    dry_run: bool = False,
) -> list[SyncResult]:
    """Bring the template store in line with ``templates``."""
    existing = {t.document_type: t for t in engine.list_templates()}
    results: list[SyncResult] = []

    for desired in templates:
        current = existing.get(desired.document_type)
        if current is None:
            action = SyncAction.CREATE
        elif _same_chain(current, desired):
            action = SyncAction.UNCHANGED
        else:
            action = SyncAction.REPLACE

        if action != SyncAction.UNCHANGED and not dry_run:
            engine.configure_chain(
                desired.document_type,
                desired.name,
                desired.levels,
                description=desired.description,
                is_active=desired.is_active,
            )

        results.append(SyncResult(
            document_type=desired.document_type.value,
            action=action,
            level_count=desired.level_count,
        ))

    logger.info(
        "chain_templates_synced",
        extra={
            "dry_run": dry_run,
            "created_count": sum(r.action == SyncAction.CREATE for r in results),
            "replaced_count": sum(r.action == SyncAction.REPLACE for r in results),
            "unchanged_count": sum(r.action == SyncAction.UNCHANGED for r in results),
        },
    )
    return results
