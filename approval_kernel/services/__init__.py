"""Kernel write services. Flush only; the caller owns the transaction."""

from approval_kernel.services.approval_service import ApprovalService, DecisionResult
from approval_kernel.services.chain_template_service import ChainTemplateService
from approval_kernel.services.comment_service import CommentService
from approval_kernel.services.history_recorder import HistoryRecorder

__all__ = [
    "ApprovalService",
    "DecisionResult",
    "ChainTemplateService",
    "CommentService",
    "HistoryRecorder",
]
