"""
Module: approval_kernel.models.approval
Responsibility: ORM persistence for approval requests and their per-level
    decision snapshot.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Lifecycle state machine: DB check constraint limits status values;
      the decision engine enforces transition rules.
    - At most one PENDING request per (document_type, document_id): partial
      unique index on both PostgreSQL and SQLite.
    - Optimistic concurrency: ``version`` is the mapper's version_id_col.
      Every UPDATE carries ``WHERE version = :loaded`` and bumps it by one.
    - The request row and its level decision rows are written in the same
      flush, so a decision is never partially persisted.
    - 1 <= current_level <= total_levels.

Failure modes:
    - IntegrityError on a second PENDING request for the same document.
    - StaleDataError when the row was changed by another decision since
      it was loaded.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, IdentifiedBase, UTCDateTime, UUIDString

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ApprovalRequest, LevelDecision


class ApprovalRequestModel(IdentifiedBase):
    """Persistent approval request aggregate root.

    Contract:
        Terminal statuses (APPROVED, REJECTED) are never changed once set.

    Guarantees:
        - No duplicate PENDING requests per document.
        - ``version`` increases by exactly one per committed decision.
    """

    __tablename__ = "approval_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_approval_requests_valid_status",
        ),
        CheckConstraint(
            "total_levels >= 1", name="ck_approval_requests_total_levels",
        ),
        CheckConstraint(
            "current_level >= 1 AND current_level <= total_levels",
            name="ck_approval_requests_current_level",
        ),
        Index(
            "ix_approval_requests_pending_unique",
            "document_type", "document_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index(
            "ix_approval_requests_document",
            "document_type", "document_id", "submitted_at",
        ),
        Index("ix_approval_requests_status", "status", "submitted_at"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    document_id: Mapped[str] = mapped_column(String(100), nullable=False)
    document_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_level: Mapped[int] = mapped_column(nullable=False, default=1)
    total_levels: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING",
    )
    submitted_by: Mapped[str] = mapped_column(String(100), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    version: Mapped[int] = mapped_column(nullable=False)

    level_decisions: Mapped[list["LevelDecisionModel"]] = relationship(
        "LevelDecisionModel",
        back_populates="request",
        primaryjoin="ApprovalRequestModel.request_id == LevelDecisionModel.request_id",
        order_by="LevelDecisionModel.level_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.request_id} "
            f"{self.document_type}/{self.document_id} "
            f"status={self.status} level={self.current_level}/{self.total_levels} "
            f"v{self.version}>"
        )

    def to_dto(self) -> ApprovalRequest:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            ApprovalRequest as ApprovalRequestDTO,
            ApprovalStatus,
            DocumentType,
        )

        return ApprovalRequestDTO(
            request_id=self.request_id,
            document_type=DocumentType(self.document_type),
            document_id=self.document_id,
            status=ApprovalStatus(self.status),
            current_level=self.current_level,
            total_levels=self.total_levels,
            submitted_by=self.submitted_by,
            submitted_at=self.submitted_at,
            level_decisions=tuple(d.to_dto() for d in self.level_decisions),
            version=self.version,
            completed_at=self.completed_at,
            document_description=self.document_description,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalRequest) -> ApprovalRequestModel:
        """Create ORM model (with level rows) from domain DTO.

        ``version`` is left to the mapper, which starts it at 1.
        """
        return cls(
            request_id=dto.request_id,
            document_type=dto.document_type.value,
            document_id=dto.document_id,
            document_description=dto.document_description,
            current_level=dto.current_level,
            total_levels=dto.total_levels,
            status=dto.status.value,
            submitted_by=dto.submitted_by,
            submitted_at=dto.submitted_at,
            completed_at=dto.completed_at,
            level_decisions=[
                LevelDecisionModel.from_dto(level) for level in dto.level_decisions
            ],
        )

    def apply_snapshot(self, dto: ApprovalRequest) -> None:
        """Write a decided snapshot back onto this row and its levels.

        Identity fields and ``version`` are not touched; the mapper bumps
        ``version`` on flush.
        """
        self.status = dto.status.value
        self.current_level = dto.current_level
        self.completed_at = dto.completed_at

        by_order = {level.level_order: level for level in self.level_decisions}
        for level in dto.level_decisions:
            row = by_order[level.level_order]
            if row.decision != level.decision.value:
                row.decision = level.decision.value
                row.decided_by = level.decided_by
                row.decided_at = level.decided_at
                row.comment = level.comment


class LevelDecisionModel(Base):
    """Snapshot of one chain level inside a request, plus its decision."""

    __tablename__ = "approval_level_decisions"

    __table_args__ = (
        CheckConstraint(
            "decision IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_approval_level_decisions_valid_decision",
        ),
        CheckConstraint(
            "level_order > 0", name="ck_approval_level_decisions_order",
        ),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_requests.request_id", ondelete="CASCADE"),
        primary_key=True,
    )
    level_order: Mapped[int] = mapped_column(primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    expected_approver: Mapped[str] = mapped_column(String(100), nullable=False)
    decision: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING",
    )
    decided_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    request: Mapped["ApprovalRequestModel"] = relationship(
        "ApprovalRequestModel",
        back_populates="level_decisions",
        foreign_keys=[request_id],
        primaryjoin="LevelDecisionModel.request_id == ApprovalRequestModel.request_id",
    )

    def __repr__(self) -> str:
        return (
            f"<LevelDecision request={self.request_id} "
            f"level={self.level_order} decision={self.decision}>"
        )

    def to_dto(self) -> LevelDecision:
        from approval_kernel.domain.approval import (
            LevelDecision as LevelDecisionDTO,
            LevelDecisionStatus,
        )

        return LevelDecisionDTO(
            level_order=self.level_order,
            display_name=self.display_name,
            expected_approver=self.expected_approver,
            decision=LevelDecisionStatus(self.decision),
            decided_by=self.decided_by,
            decided_at=self.decided_at,
            comment=self.comment,
        )

    @classmethod
    def from_dto(cls, dto: LevelDecision) -> LevelDecisionModel:
        return cls(
            level_order=dto.level_order,
            display_name=dto.display_name,
            expected_approver=dto.expected_approver,
            decision=dto.decision.value,
            decided_by=dto.decided_by,
            decided_at=dto.decided_at,
            comment=dto.comment,
        )
