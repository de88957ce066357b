"""ORM models for the approval kernel."""

from approval_kernel.models.approval import ApprovalRequestModel, LevelDecisionModel
from approval_kernel.models.chain_template import ChainLevelModel, ChainTemplateModel
from approval_kernel.models.comment import ApprovalCommentModel
from approval_kernel.models.history import ApprovalHistoryModel

__all__ = [
    "ApprovalRequestModel",
    "LevelDecisionModel",
    "ChainTemplateModel",
    "ChainLevelModel",
    "ApprovalHistoryModel",
    "ApprovalCommentModel",
]
