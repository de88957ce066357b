"""
approval_kernel.services.approval_service -- Approval request lifecycle.

Responsibility:
    Creates approval requests from a chain template snapshot and records
    per-level decisions.  Rule evaluation is delegated to the pure
    ``decision_engine``; this service loads, writes back and flushes.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Snapshot at creation: level names and approvers are copied from the
      template by value; later template edits do not reach the request.
    - At most one PENDING request per document: enforced by the partial
      unique index.  The insert is flushed and the IntegrityError is
      translated; there is no check-then-insert.
    - Optimistic concurrency: the caller's ``expected_version`` is checked
      against the loaded row, and the UPDATE itself carries the loaded
      version.  A zero-row UPDATE (StaleDataError) becomes a conflict.
    - The request row and its level rows are flushed together.

Failure modes:
    - ApprovalNotFoundError if request_id not found.
    - ApprovalAlreadyExistsError on a second PENDING request.
    - InvalidChainConfigurationError on a zero-level template.
    - ApprovalConflictError on a stale version.
    - ApprovalAlreadyCompletedError, WrongApprovalLevelError,
      UnauthorizedApproverError, MissingRejectionReasonError from the
      decision engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from approval_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    ChainTemplate,
    DocumentType,
)
from approval_kernel.domain.decision_engine import (
    DecisionOutcome,
    apply_outcome,
    evaluate_decision,
    snapshot_levels,
)
from approval_kernel.exceptions import (
    ApprovalAlreadyExistsError,
    ApprovalConflictError,
    ApprovalNotFoundError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.approval import ApprovalRequestModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.approval")


@dataclass(frozen=True)
class DecisionResult:
    """Request snapshot after a decision, plus what the decision did."""

    request: ApprovalRequest
    outcome: DecisionOutcome


class ApprovalService(BaseService[ApprovalRequestModel]):
    """Starts approval requests and records level decisions."""

    def start(
        self,
        document_type: DocumentType | str,
        document_id: str,
        submitted_by: str,
        template: ChainTemplate,
        document_description: str | None = None,
    ) -> ApprovalRequest:
        """Create a PENDING request at level 1 from a template snapshot.

        Raises:
            InvalidChainConfigurationError: If the template has no levels.
            ApprovalAlreadyExistsError: If a PENDING request already exists
                for the document.
        """
        doc_type = DocumentType(document_type)
        levels = snapshot_levels(template)
        now = self.clock.now()

        dto = ApprovalRequest(
            request_id=uuid4(),
            document_type=doc_type,
            document_id=document_id,
            status=ApprovalStatus.PENDING,
            current_level=1,
            total_levels=len(levels),
            submitted_by=submitted_by,
            submitted_at=now,
            level_decisions=levels,
            version=1,
            document_description=document_description,
        )
        model = ApprovalRequestModel.from_dto(dto)
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.warning(
                "approval_request_duplicate",
                extra={
                    "document_type": doc_type.value,
                    "document_id": document_id,
                },
            )
            raise ApprovalAlreadyExistsError(doc_type.value, document_id)

        logger.info(
            "approval_request_started",
            extra={
                "request_id": str(dto.request_id),
                "document_type": doc_type.value,
                "document_id": document_id,
                "submitted_by": submitted_by,
                "total_levels": dto.total_levels,
            },
        )
        return model.to_dto()

    def decide(
        self,
        request_id: UUID,
        level_order: int,
        actor: str,
        decision: ApprovalDecision,
        comment: str | None = None,
        *,
        expected_version: int,
    ) -> DecisionResult:
        """Record one level decision.

        Raises:
            ApprovalNotFoundError: If the request does not exist.
            ApprovalConflictError: If ``expected_version`` is stale, or the
                row changed between load and write.
            ApprovalError: Any other outcome of ``evaluate_decision``.
        """
        model = self._load_request_model(request_id)
        current = model.to_dto()

        try:
            outcome = evaluate_decision(
                current,
                level_order=level_order,
                actor=actor,
                decision=ApprovalDecision(decision),
                comment=comment,
                expected_version=expected_version,
            )
        except ApprovalConflictError:
            logger.info(
                "approval_conflict_detected",
                extra={
                    "request_id": str(request_id),
                    "expected_version": expected_version,
                    "actual_version": current.version,
                    "stage": "read",
                },
            )
            raise

        decided = apply_outcome(
            current,
            outcome,
            actor=actor,
            comment=comment,
            decided_at=self.clock.now(),
        )
        model.apply_snapshot(decided)

        try:
            self.session.flush()
        except StaleDataError:
            self.session.rollback()
            logger.info(
                "approval_conflict_detected",
                extra={
                    "request_id": str(request_id),
                    "expected_version": expected_version,
                    "stage": "write",
                },
            )
            raise ApprovalConflictError(str(request_id), expected_version=expected_version)

        logger.info(
            "approval_decision_recorded",
            extra={
                "request_id": str(request_id),
                "level_order": level_order,
                "actor": actor,
                "decision": outcome.decision.value,
                "status": outcome.next_status.value,
                "current_level": outcome.next_level,
                "version": model.version,
            },
        )
        return DecisionResult(request=model.to_dto(), outcome=outcome)

    def approve(
        self,
        request_id: UUID,
        level_order: int,
        actor: str,
        comment: str | None = None,
        *,
        expected_version: int,
    ) -> DecisionResult:
        return self.decide(
            request_id, level_order, actor, ApprovalDecision.APPROVE, comment,
            expected_version=expected_version,
        )

    def reject(
        self,
        request_id: UUID,
        level_order: int,
        actor: str,
        reason: str | None,
        *,
        expected_version: int,
    ) -> DecisionResult:
        return self.decide(
            request_id, level_order, actor, ApprovalDecision.REJECT, reason,
            expected_version=expected_version,
        )

    def _load_request_model(self, request_id: UUID) -> ApprovalRequestModel:
        model = self.session.execute(
            select(ApprovalRequestModel).where(
                ApprovalRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise ApprovalNotFoundError(str(request_id))
        return model
