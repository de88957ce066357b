"""
Module: approval_kernel.models.history
Responsibility: Append-only audit trail of approval lifecycle events.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - Append-only: ORM listeners reject UPDATE and DELETE.
    - Entries reference a request by ``request_id``; the request row is
      written in an earlier transaction, so no FK ordering hazard exists.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import IdentifiedBase, UTCDateTime, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.approval import HistoryEntry


class ApprovalHistoryModel(IdentifiedBase):
    """One lifecycle event on an approval request. Append-only."""

    __tablename__ = "approval_history"

    __table_args__ = (
        CheckConstraint(
            "action IN ('SUBMITTED', 'APPROVED', 'REJECTED')",
            name="ck_approval_history_valid_action",
        ),
        Index("ix_approval_history_request", "request_id", "recorded_at"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    level_order: Mapped[int | None] = mapped_column(nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalHistory {self.id} request={self.request_id} "
            f"{self.action} level={self.level_order}>"
        )

    def to_dto(self) -> HistoryEntry:
        from approval_kernel.domain.approval import (
            HistoryAction,
            HistoryEntry as HistoryEntryDTO,
        )

        return HistoryEntryDTO(
            entry_id=self.id,
            request_id=self.request_id,
            action=HistoryAction(self.action),
            actor=self.actor,
            recorded_at=self.recorded_at,
            level_order=self.level_order,
            comment=self.comment,
        )


@event.listens_for(ApprovalHistoryModel, "before_update")
def prevent_history_update(mapper, connection, target):
    """Prevent updates to approval history entries."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot modify",
    )


@event.listens_for(ApprovalHistoryModel, "before_delete")
def prevent_history_delete(mapper, connection, target):
    """Prevent deletion of approval history entries."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.id),
        reason="Approval history is append-only -- cannot delete",
    )
