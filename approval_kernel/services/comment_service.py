"""
approval_kernel.services.comment_service -- Append-only comment store.

Responsibility:
    Records discussion comments and rejection reasons against a request.
    Comments are allowed in any request state.

Invariants enforced:
    - Text is never blank.
    - Insert-only.  ``ApprovalCommentModel`` listeners reject UPDATE/DELETE.

Failure modes:
    - ApprovalNotFoundError if the request does not exist.
    - BlankCommentError on empty or whitespace-only text.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select

from approval_kernel.domain.approval import ApprovalComment
from approval_kernel.exceptions import ApprovalNotFoundError, BlankCommentError
from approval_kernel.logging_config import get_logger
from approval_kernel.models.approval import ApprovalRequestModel
from approval_kernel.models.comment import ApprovalCommentModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.comment")


class CommentService(BaseService[ApprovalCommentModel]):
    """Adds comments to approval requests."""

    def add(
        self,
        request_id: UUID,
        commenter: str,
        text: str,
        is_rejection_reason: bool = False,
    ) -> ApprovalComment:
        if text is None or not text.strip():
            raise BlankCommentError(str(request_id))

        exists = self.session.execute(
            select(ApprovalRequestModel.request_id).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if exists is None:
            raise ApprovalNotFoundError(str(request_id))

        model = ApprovalCommentModel(
            id=uuid4(),
            request_id=request_id,
            commenter=commenter,
            text=text.strip(),
            is_rejection_reason=is_rejection_reason,
            created_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_comment_added",
            extra={
                "request_id": str(request_id),
                "commenter": commenter,
                "is_rejection_reason": is_rejection_reason,
            },
        )
        return model.to_dto()
