"""
Module: approval_kernel.models.comment
Responsibility: Append-only discussion comments and rejection reasons.

Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: ORM listeners reject UPDATE and DELETE.
    - Comment text is never blank (checked by CommentService before insert).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import IdentifiedBase, UTCDateTime, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ApprovalComment


class ApprovalCommentModel(IdentifiedBase):
    """Free-text comment on an approval request. Append-only."""

    __tablename__ = "approval_comments"

    __table_args__ = (
        Index("ix_approval_comments_request", "request_id", "created_at"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id"),
        nullable=False,
    )
    commenter: Mapped[str] = mapped_column(String(100), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_rejection_reason: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<ApprovalComment {self.id} request={self.request_id}>"

    def to_dto(self) -> ApprovalComment:
        from approval_kernel.domain.approval import (
            ApprovalComment as ApprovalCommentDTO,
        )

        return ApprovalCommentDTO(
            comment_id=self.id,
            request_id=self.request_id,
            commenter=self.commenter,
            text=self.text,
            is_rejection_reason=self.is_rejection_reason,
            created_at=self.created_at,
        )


@event.listens_for(ApprovalCommentModel, "before_update")
def prevent_comment_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalComment",
        entity_id=str(target.id),
        reason="Approval comments are append-only -- cannot modify",
    )


@event.listens_for(ApprovalCommentModel, "before_delete")
def prevent_comment_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalComment",
        entity_id=str(target.id),
        reason="Approval comments are append-only -- cannot delete",
    )
