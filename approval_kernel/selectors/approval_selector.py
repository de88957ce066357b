"""
Module: approval_kernel.selectors.approval_selector
Responsibility: Read projections over approval requests, their history and
    their comments.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - History is returned in causal order: the SUBMITTED entry first, then
      level decisions by level order.  Levels are decided strictly in
      sequence, so ``(coalesce(level_order, 0), recorded_at)`` is causal.
    - Returned objects are frozen DTOs.

Failure modes:
    - ApprovalNotFoundError on unknown request id or document.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, case, func, select

from approval_kernel.domain.approval import (
    ApprovalComment,
    ApprovalRequest,
    ApprovalStatus,
    DocumentType,
    HistoryEntry,
    Page,
)
from approval_kernel.exceptions import ApprovalNotFoundError
from approval_kernel.models.approval import ApprovalRequestModel, LevelDecisionModel
from approval_kernel.models.comment import ApprovalCommentModel
from approval_kernel.models.history import ApprovalHistoryModel
from approval_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def _clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_SIZE))


class ApprovalSelector(BaseSelector[ApprovalRequestModel]):
    """Query side of the approval engine."""

    def get_request(self, request_id: UUID) -> ApprovalRequest:
        model = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise ApprovalNotFoundError(str(request_id))
        return model.to_dto()

    def get_request_by_document(
        self,
        document_type: DocumentType | str,
        document_id: str,
    ) -> ApprovalRequest:
        """Return the PENDING request for a document, else the latest one."""
        doc_type = DocumentType(document_type)
        pending_first = case(
            (ApprovalRequestModel.status == ApprovalStatus.PENDING.value, 0),
            else_=1,
        )
        model = self.session.execute(
            select(ApprovalRequestModel)
            .where(
                ApprovalRequestModel.document_type == doc_type.value,
                ApprovalRequestModel.document_id == document_id,
            )
            .order_by(pending_first, ApprovalRequestModel.submitted_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        if model is None:
            raise ApprovalNotFoundError(f"{doc_type.value}/{document_id}")
        return model.to_dto()

    def list_history(self, request_id: UUID) -> list[HistoryEntry]:
        """All history entries for a request, in causal order.

        An unknown request id yields an empty list.
        """
        models = self.session.execute(
            select(ApprovalHistoryModel)
            .where(ApprovalHistoryModel.request_id == request_id)
            .order_by(
                func.coalesce(ApprovalHistoryModel.level_order, 0),
                ApprovalHistoryModel.recorded_at,
            )
        ).scalars().all()
        return [model.to_dto() for model in models]

    def list_comments(self, request_id: UUID) -> list[ApprovalComment]:
        models = self.session.execute(
            select(ApprovalCommentModel)
            .where(ApprovalCommentModel.request_id == request_id)
            .order_by(ApprovalCommentModel.created_at)
        ).scalars().all()
        return [model.to_dto() for model in models]

    def list_pending_for_approver(
        self,
        approver: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Page:
        """PENDING requests whose current level is assigned to ``approver``."""
        limit = _clamp_limit(limit)
        offset = max(0, offset)
        join_current = and_(
            LevelDecisionModel.request_id == ApprovalRequestModel.request_id,
            LevelDecisionModel.level_order == ApprovalRequestModel.current_level,
        )
        conditions = (
            ApprovalRequestModel.status == ApprovalStatus.PENDING.value,
            LevelDecisionModel.expected_approver == approver,
        )

        total = self.session.execute(
            select(func.count())
            .select_from(ApprovalRequestModel)
            .join(LevelDecisionModel, join_current)
            .where(*conditions)
        ).scalar_one()

        models = self.session.execute(
            select(ApprovalRequestModel)
            .join(LevelDecisionModel, join_current)
            .where(*conditions)
            .order_by(ApprovalRequestModel.submitted_at, ApprovalRequestModel.id)
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return Page(
            items=tuple(model.to_dto() for model in models),
            total=total,
            limit=limit,
            offset=offset,
        )

    def list_requests(
        self,
        document_type: DocumentType | str | None = None,
        status: ApprovalStatus | str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Page:
        """All requests, newest first, optionally filtered."""
        limit = _clamp_limit(limit)
        offset = max(0, offset)
        conditions = []
        if document_type is not None:
            conditions.append(
                ApprovalRequestModel.document_type == DocumentType(document_type).value
            )
        if status is not None:
            conditions.append(
                ApprovalRequestModel.status == ApprovalStatus(status).value
            )

        total = self.session.execute(
            select(func.count())
            .select_from(ApprovalRequestModel)
            .where(*conditions)
        ).scalar_one()

        models = self.session.execute(
            select(ApprovalRequestModel)
            .where(*conditions)
            .order_by(
                ApprovalRequestModel.submitted_at.desc(),
                ApprovalRequestModel.id,
            )
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return Page(
            items=tuple(model.to_dto() for model in models),
            total=total,
            limit=limit,
            offset=offset,
        )
