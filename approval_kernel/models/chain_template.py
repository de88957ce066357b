"""
Module: approval_kernel.models.chain_template
Responsibility: ORM persistence for administrator-configured approval chains.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One template per document type (unique constraint).
    - Level orders are positive and unique within a template (composite
      primary key plus check constraint).  Contiguity is validated by the
      service before levels are written.
    - Editing a template never touches approval requests; requests hold
      their own level snapshot.

Failure modes:
    - IntegrityError on a second template for the same document type.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, IdentifiedBase, UTCDateTime, UUIDString

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ChainLevel, ChainTemplate


class ChainTemplateModel(IdentifiedBase):
    """Persistent approval chain template, one per document type."""

    __tablename__ = "approval_chain_templates"

    document_type: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    levels: Mapped[list["ChainLevelModel"]] = relationship(
        "ChainLevelModel",
        back_populates="template",
        order_by="ChainLevelModel.level_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ChainTemplate {self.document_type} "
            f"levels={len(self.levels)} active={self.is_active}>"
        )

    def to_dto(self) -> ChainTemplate:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            ChainTemplate as ChainTemplateDTO,
            DocumentType,
        )

        return ChainTemplateDTO(
            document_type=DocumentType(self.document_type),
            name=self.name,
            levels=tuple(level.to_dto() for level in self.levels),
            description=self.description,
            is_active=self.is_active,
        )


class ChainLevelModel(Base):
    """One ordered level of a chain template."""

    __tablename__ = "approval_chain_levels"

    __table_args__ = (
        CheckConstraint("level_order > 0", name="ck_approval_chain_levels_order"),
    )

    template_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_chain_templates.id", ondelete="CASCADE"),
        primary_key=True,
    )
    level_order: Mapped[int] = mapped_column(primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    approver: Mapped[str] = mapped_column(String(100), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    template: Mapped["ChainTemplateModel"] = relationship(
        "ChainTemplateModel", back_populates="levels",
    )

    def __repr__(self) -> str:
        return f"<ChainLevel {self.level_order} {self.display_name} -> {self.approver}>"

    def to_dto(self) -> ChainLevel:
        from approval_kernel.domain.approval import ChainLevel as ChainLevelDTO

        return ChainLevelDTO(
            order=self.level_order,
            display_name=self.display_name,
            approver=self.approver,
            is_required=self.is_required,
        )

    @classmethod
    def from_dto(cls, dto: ChainLevel) -> ChainLevelModel:
        return cls(
            level_order=dto.order,
            display_name=dto.display_name,
            approver=dto.approver,
            is_required=dto.is_required,
        )
