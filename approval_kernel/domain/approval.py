"""
Approval domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the sequential approval engine.  Defines the
request lifecycle, chain templates, per-level decision snapshots,
history/comment records and the completion event.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Lifecycle state machine -- ``APPROVAL_TRANSITIONS`` defines the only
  valid status transitions.  Terminal states have no outgoing edges.
* Chain shape -- ``validate_chain_levels`` rejects gaps and duplicate
  orders; orders start at 1.
* Snapshot -- ``ApprovalRequest.level_decisions`` holds value copies of
  the template levels; there is no reference back to the template.
* Level ordering -- below ``current_level`` every level is decided; at
  and above it every level is PENDING (see ``decision_engine``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence
from uuid import UUID

from approval_kernel.exceptions import InvalidChainConfigurationError


# =========================================================================
# Enumerations
# =========================================================================


class DocumentType(str, Enum):
    """Business document types that go through approval."""

    QUOTATION = "QUOTATION"
    PURCHASE_ORDER = "PURCHASE_ORDER"


class ApprovalStatus(str, Enum):
    """Approval request lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


class LevelDecisionStatus(str, Enum):
    """Decision state of a single level."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApprovalDecision(str, Enum):
    """Decision types that an approver can make."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


class HistoryAction(str, Enum):
    """Lifecycle events recorded in the approval history."""

    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# =========================================================================
# Chain Template
# =========================================================================


@dataclass(frozen=True)
class ChainLevel:
    """One position in an approval chain, bound to exactly one approver.

    ``is_required`` is carried for administrators; the engine always
    decides every level in order.
    """

    order: int
    display_name: str
    approver: str
    is_required: bool = True


@dataclass(frozen=True)
class ChainTemplate:
    """Administrator-configured, ordered approval chain for a document type."""

    document_type: DocumentType
    name: str
    levels: tuple[ChainLevel, ...] = ()
    description: str | None = None
    is_active: bool = True

    @property
    def level_count(self) -> int:
        return len(self.levels)

    @property
    def has_levels(self) -> bool:
        return bool(self.levels)


def validate_chain_levels(
    levels: Sequence[ChainLevel],
    document_type: str | None = None,
) -> tuple[ChainLevel, ...]:
    """Validate level shape and return the levels sorted by order.

    An empty chain is structurally valid (an administrator may clear a
    template); starting an approval on it is refused separately.

    Raises:
        InvalidChainConfigurationError: on duplicate orders, gaps, orders
            not starting at 1, or blank display names / approvers.
    """
    ordered = tuple(sorted(levels, key=lambda level: level.order))
    orders = [level.order for level in ordered]

    if len(set(orders)) != len(orders):
        raise InvalidChainConfigurationError(
            document_type, f"duplicate level orders {orders}",
        )
    if orders != list(range(1, len(orders) + 1)):
        raise InvalidChainConfigurationError(
            document_type,
            f"level orders must be contiguous starting at 1, got {orders}",
        )
    for level in ordered:
        if not level.display_name or not level.display_name.strip():
            raise InvalidChainConfigurationError(
                document_type, f"level {level.order} has no display name",
            )
        if not level.approver or not level.approver.strip():
            raise InvalidChainConfigurationError(
                document_type, f"level {level.order} has no approver",
            )
    return ordered


# =========================================================================
# Request Aggregate
# =========================================================================


@dataclass(frozen=True)
class LevelDecision:
    """Snapshot of one chain level inside a request, plus its decision."""

    level_order: int
    display_name: str
    expected_approver: str
    decision: LevelDecisionStatus = LevelDecisionStatus.PENDING
    decided_by: str | None = None
    decided_at: datetime | None = None
    comment: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.decision == LevelDecisionStatus.PENDING


@dataclass(frozen=True)
class ApprovalRequest:
    """Immutable snapshot of an approval request aggregate.

    ``level_decisions`` is indexed by ``level_order - 1``.
    ``version`` is the optimistic concurrency token; callers present it
    back on every decision.
    """

    request_id: UUID
    document_type: DocumentType
    document_id: str
    status: ApprovalStatus
    current_level: int
    total_levels: int
    submitted_by: str
    submitted_at: datetime
    level_decisions: tuple[LevelDecision, ...]
    version: int
    completed_at: datetime | None = None
    document_description: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES

    @property
    def is_at_final_level(self) -> bool:
        return self.current_level == self.total_levels

    def level(self, level_order: int) -> LevelDecision | None:
        """Return the decision for a level, or None if out of range."""
        if 1 <= level_order <= len(self.level_decisions):
            return self.level_decisions[level_order - 1]
        return None

    @property
    def current_level_decision(self) -> LevelDecision | None:
        return self.level(self.current_level)


# =========================================================================
# Satellites: history, comments
# =========================================================================


@dataclass(frozen=True)
class HistoryEntry:
    """Append-only record of one lifecycle event."""

    entry_id: UUID
    request_id: UUID
    action: HistoryAction
    actor: str
    recorded_at: datetime
    level_order: int | None = None
    comment: str | None = None


@dataclass(frozen=True)
class ApprovalComment:
    """Free-text note on a request; rejection reasons are flagged."""

    comment_id: UUID
    request_id: UUID
    commenter: str
    text: str
    is_rejection_reason: bool
    created_at: datetime


# =========================================================================
# Completion event
# =========================================================================


@dataclass(frozen=True)
class ApprovalCompleted:
    """Emitted once a request reaches APPROVED or REJECTED.

    Document services subscribe to update their own document state.
    ``reason`` is the rejection reason for REJECTED, else None.
    """

    request_id: UUID
    document_type: DocumentType
    document_id: str
    status: ApprovalStatus
    decided_by: str
    completed_at: datetime
    reason: str | None = None


# =========================================================================
# Read-side page
# =========================================================================


@dataclass(frozen=True)
class Page:
    """One page of a list projection."""

    items: tuple[ApprovalRequest, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total
