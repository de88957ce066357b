"""
approval_kernel.services.history_recorder -- Append-only approval history.

Responsibility:
    Appends one history entry per lifecycle event (submission and each
    level decision).  Never modifies or removes entries.

Architecture position:
    Kernel > Services.  Called by the outer facade after the aggregate
    write has committed; a failure here never undoes the decision.

Invariants enforced:
    - Insert-only.  ``ApprovalHistoryModel`` listeners reject UPDATE/DELETE.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from approval_kernel.domain.approval import HistoryAction, HistoryEntry
from approval_kernel.logging_config import get_logger
from approval_kernel.models.history import ApprovalHistoryModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.history")


class HistoryRecorder(BaseService[ApprovalHistoryModel]):
    """Appends approval lifecycle events."""

    def append(
        self,
        request_id: UUID,
        action: HistoryAction,
        actor: str,
        level_order: int | None = None,
        comment: str | None = None,
    ) -> HistoryEntry:
        model = ApprovalHistoryModel(
            id=uuid4(),
            request_id=request_id,
            action=HistoryAction(action).value,
            actor=actor,
            level_order=level_order,
            comment=comment,
            recorded_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.debug(
            "approval_history_appended",
            extra={
                "request_id": str(request_id),
                "action": model.action,
                "level_order": level_order,
            },
        )
        return model.to_dto()
