"""
Configuration Validator (``approval_config.validator``).

Responsibility
--------------
Validates an ``ApprovalConfiguration`` before it is used, so a broken
chain never reaches the template store.

Invariants enforced
-------------------
* Every template names a known document type, at most once.
* Level orders are contiguous from 1 with no duplicates.
* Display names and approvers are non-blank.

Failure modes
-------------
* ``ValidationResult.errors``  -> configuration MUST NOT be applied.
* ``ValidationResult.warnings`` -> usable but should be reviewed (for
  example a template with no levels, on which no approval can start).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from approval_config.schema import ApprovalConfiguration, ChainTemplateDef
from approval_kernel.domain.approval import DocumentType


@dataclass
class ValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


_KNOWN_DOCUMENT_TYPES = frozenset(dt.value for dt in DocumentType)


def validate_configuration(config: ApprovalConfiguration) -> ValidationResult:
    """Validate a configuration set and collect every problem found."""
    result = ValidationResult()

    if not config.database.url or not config.database.url.strip():
        result.add_error("database.url is empty")

    seen: set[str] = set()
    for template in config.chain_templates:
        if template.document_type not in _KNOWN_DOCUMENT_TYPES:
            result.add_error(
                f"Unknown document type {template.document_type!r}; "
                f"expected one of {sorted(_KNOWN_DOCUMENT_TYPES)}"
            )
        if template.document_type in seen:
            result.add_error(
                f"Duplicate chain template for {template.document_type}"
            )
        seen.add(template.document_type)
        _validate_levels(template, result)

    for missing in sorted(_KNOWN_DOCUMENT_TYPES - seen):
        result.add_warning(f"No chain template configured for {missing}")

    return result


def _validate_levels(template: ChainTemplateDef, result: ValidationResult) -> None:
    prefix = f"Chain template {template.document_type}"
    if not template.levels:
        result.add_warning(f"{prefix} has no levels; approvals cannot start")
        return

    orders = sorted(level.order for level in template.levels)
    if len(set(orders)) != len(orders):
        result.add_error(f"{prefix} has duplicate level orders {orders}")
    elif orders != list(range(1, len(orders) + 1)):
        result.add_error(
            f"{prefix} level orders must be contiguous starting at 1, got {orders}"
        )

    for level in template.levels:
        if not level.display_name.strip():
            result.add_error(f"{prefix} level {level.order} has no display name")
        if not level.approver.strip():
            result.add_error(f"{prefix} level {level.order} has no approver")
