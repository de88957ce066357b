"""
approval_services.engine -- Command/query facade for the approval engine.

Responsibility:
    The external surface used by document services and approver UIs.
    Wires kernel services per call, owns every transaction boundary, and
    runs the best-effort steps (history, rejection-reason comment,
    completion events) after the aggregate write has committed.

Architecture position:
    Services -- outer layer over ``approval_kernel``.  The kernel never
    imports from this package.

Invariants enforced:
    - Stateless handler: every call opens its own session from the
      session factory, commits on success and rolls back on failure.
    - Atomic unit: a decision's request row and level rows commit together
      in one transaction.  The history row and a rejection
      reason comment are each appended in a transaction of their own; if
      one fails the decision stays committed and the failure is logged as
      ``approval_history_append_failed`` or
      ``approval_rejection_reason_append_failed``.
    - Conflicts are surfaced to the caller, never retried here.
    - Completion handlers run only after the terminal decision committed.

Failure modes:
    - Every ``ApprovalError`` / ``ApprovalConflictError`` from the kernel
      propagates unchanged.
    - Unmapped ``SQLAlchemyError`` is raised as PersistenceFailureError.

Usage:
    engine = ApprovalEngine(get_session_factory())
    request_id = engine.start_approval(DocumentType.QUOTATION, "Q-1", "sales")
    request = engine.get_request(request_id)
    engine.approve(request_id, 1, "lead", expected_version=request.version)
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from approval_kernel.domain.approval import (
    ApprovalComment,
    ApprovalCompleted,
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    ChainLevel,
    ChainTemplate,
    DocumentType,
    HistoryAction,
    HistoryEntry,
    LevelDecisionStatus,
    Page,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.exceptions import (
    ApprovalKernelError,
    ChainTemplateNotFoundError,
    PersistenceFailureError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.selectors.approval_selector import (
    DEFAULT_PAGE_SIZE,
    ApprovalSelector,
)
from approval_kernel.services.approval_service import ApprovalService, DecisionResult
from approval_kernel.services.chain_template_service import ChainTemplateService
from approval_kernel.services.comment_service import CommentService
from approval_kernel.services.history_recorder import HistoryRecorder
from approval_services.events import CompletionEventBus, CompletionHandler

logger = get_logger("services.engine")


class ApprovalEngine:
    """Command and query entry point for multi-level approvals.

    Contract:
        Receives a ``sessionmaker`` and optional ``Clock``.  Holds no
        per-request state, so one instance may serve concurrent callers.

    Non-goals:
        - Does NOT authenticate actors; ``actor`` strings are trusted.
        - Does NOT retry conflicts.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        event_bus: CompletionEventBus | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._events = event_bus or CompletionEventBus()

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except ApprovalKernelError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "approval_persistence_failed",
                extra={"operation": operation},
                exc_info=True,
            )
            raise PersistenceFailureError(operation, str(exc)) from exc
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_approval(
        self,
        document_type: DocumentType | str,
        document_id: str,
        submitted_by: str,
        document_description: str | None = None,
    ) -> UUID:
        """Start approval for a document using its active chain template.

        Raises:
            ChainTemplateNotFoundError: No active template for the type.
            InvalidChainConfigurationError: The template has no levels.
            ApprovalAlreadyExistsError: A PENDING request already exists.
        """
        doc_type = DocumentType(document_type)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=submitted_by,
            document_type=doc_type.value,
            document_id=document_id,
        ):
            with self._transaction("start_approval") as session:
                template = ChainTemplateService(session, self._clock).get_active_template(doc_type)
                request = ApprovalService(session, self._clock).start(
                    doc_type,
                    document_id,
                    submitted_by,
                    template,
                    document_description=document_description,
                )

            self._append_history(
                request.request_id,
                HistoryAction.SUBMITTED,
                submitted_by,
            )
            return request.request_id

    def decide(
        self,
        request_id: UUID,
        level_order: int,
        actor: str,
        decision: ApprovalDecision | str,
        comment: str | None = None,
        *,
        expected_version: int,
    ) -> ApprovalRequest:
        """Record a decision on the request's current level.

        ``expected_version`` is the version the caller last read.  The
        returned request carries the new version.

        Raises:
            ApprovalNotFoundError, ApprovalConflictError,
            ApprovalAlreadyCompletedError, WrongApprovalLevelError,
            UnauthorizedApproverError, MissingRejectionReasonError.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor,
            request_id=str(request_id),
        ):
            with self._transaction("decide") as session:
                result = ApprovalService(session, self._clock).decide(
                    request_id,
                    level_order,
                    actor,
                    ApprovalDecision(decision),
                    comment,
                    expected_version=expected_version,
                )

            self._after_decision(result, actor, comment)
            return result.request

    def approve(
        self,
        request_id: UUID,
        level_order: int,
        actor: str,
        comment: str | None = None,
        *,
        expected_version: int,
    ) -> ApprovalRequest:
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
    ) -> ApprovalRequest:
        return self.decide(
            request_id, level_order, actor, ApprovalDecision.REJECT, reason,
            expected_version=expected_version,
        )

    def add_comment(self, request_id: UUID, commenter: str, text: str) -> UUID:
        """Add a discussion comment.  Allowed in any request state."""
        with LogContext.bind(actor_id=commenter, request_id=str(request_id)):
            with self._transaction("add_comment") as session:
                comment = CommentService(session, self._clock).add(
                    request_id, commenter, text,
                )
            return comment.comment_id

    def on_completed(self, handler: CompletionHandler) -> CompletionHandler:
        """Subscribe to ApprovalCompleted.  Usable as a decorator."""
        return self._events.subscribe(handler)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: UUID) -> ApprovalRequest:
        with self._transaction("get_request") as session:
            return ApprovalSelector(session).get_request(request_id)

    def get_request_by_document(
        self,
        document_type: DocumentType | str,
        document_id: str,
    ) -> ApprovalRequest:
        with self._transaction("get_request_by_document") as session:
            return ApprovalSelector(session).get_request_by_document(
                document_type, document_id,
            )

    def list_history(self, request_id: UUID) -> list[HistoryEntry]:
        with self._transaction("list_history") as session:
            return ApprovalSelector(session).list_history(request_id)

    def list_comments(self, request_id: UUID) -> list[ApprovalComment]:
        with self._transaction("list_comments") as session:
            return ApprovalSelector(session).list_comments(request_id)

    def list_pending_for_approver(
        self,
        approver: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Page:
        with self._transaction("list_pending_for_approver") as session:
            return ApprovalSelector(session).list_pending_for_approver(
                approver, limit=limit, offset=offset,
            )

    def list_requests(
        self,
        document_type: DocumentType | str | None = None,
        status: ApprovalStatus | str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Page:
        with self._transaction("list_requests") as session:
            return ApprovalSelector(session).list_requests(
                document_type=document_type,
                status=status,
                limit=limit,
                offset=offset,
            )

    # ------------------------------------------------------------------
    # Chain administration
    # ------------------------------------------------------------------

    def get_active_template(self, document_type: DocumentType | str) -> ChainTemplate:
        with self._transaction("get_active_template") as session:
            return ChainTemplateService(session, self._clock).get_active_template(
                document_type,
            )

    def list_templates(self) -> list[ChainTemplate]:
        with self._transaction("list_templates") as session:
            return ChainTemplateService(session, self._clock).list_templates()

    def configure_chain(
        self,
        document_type: DocumentType | str,
        name: str,
        levels: Sequence[ChainLevel],
        description: str | None = None,
        is_active: bool | None = None,
    ) -> ChainTemplate:
        """Create the template for a document type, or replace its levels.

        Requests already in flight keep their original level snapshot.
        Levels and the active flag are written in one transaction; with
        ``is_active=None`` a new template is active and an existing one
        keeps its flag.
        """
        doc_type = DocumentType(document_type)
        with LogContext.bind(document_type=doc_type.value):
            with self._transaction("configure_chain") as session:
                templates = ChainTemplateService(session, self._clock)
                try:
                    return templates.replace_levels(
                        doc_type, levels, name=name,
                        description=description, is_active=is_active,
                    )
                except ChainTemplateNotFoundError:
                    return templates.create_template(
                        doc_type, name, levels,
                        description=description,
                        is_active=True if is_active is None else is_active,
                    )

    def set_template_active(
        self,
        document_type: DocumentType | str,
        is_active: bool,
    ) -> ChainTemplate:
        with self._transaction("set_template_active") as session:
            return ChainTemplateService(session, self._clock).set_active(
                document_type, is_active,
            )

    # ------------------------------------------------------------------
    # Post-commit steps
    # ------------------------------------------------------------------

    def _after_decision(
        self,
        result: DecisionResult,
        actor: str,
        comment: str | None,
    ) -> None:
        outcome = result.outcome
        request = result.request
        reason = comment.strip() if comment and comment.strip() else None

        self._append_history(
            request.request_id,
            outcome.history_action,
            actor,
            level_order=outcome.level_order,
            comment=reason,
        )
        if outcome.level_status == LevelDecisionStatus.REJECTED and reason is not None:
            self._append_rejection_reason(request.request_id, actor, reason)

        if outcome.is_terminal:
            self._events.publish(
                ApprovalCompleted(
                    request_id=request.request_id,
                    document_type=request.document_type,
                    document_id=request.document_id,
                    status=request.status,
                    decided_by=actor,
                    completed_at=request.completed_at,
                    reason=reason if request.status == ApprovalStatus.REJECTED else None,
                )
            )

    def _append_history(
        self,
        request_id: UUID,
        action: HistoryAction,
        actor: str,
        level_order: int | None = None,
        comment: str | None = None,
    ) -> None:
        """Append a history entry in its own transaction.

        The aggregate write has already committed; a failure here is logged
        and the caller still sees the committed result.
        """
        try:
            with self._transaction("append_history") as session:
                HistoryRecorder(session, self._clock).append(
                    request_id,
                    action,
                    actor,
                    level_order=level_order,
                    comment=comment,
                )
        except ApprovalKernelError:
            logger.error(
                "approval_history_append_failed",
                extra={
                    "request_id": str(request_id),
                    "action": HistoryAction(action).value,
                    "level_order": level_order,
                },
                exc_info=True,
            )

    def _append_rejection_reason(self, request_id: UUID, actor: str, reason: str) -> None:
        """Store the rejection reason as a comment, apart from the history row."""
        try:
            with self._transaction("append_rejection_reason") as session:
                CommentService(session, self._clock).add(
                    request_id,
                    actor,
                    reason,
                    is_rejection_reason=True,
                )
        except ApprovalKernelError:
            logger.error(
                "approval_rejection_reason_append_failed",
                extra={"request_id": str(request_id)},
                exc_info=True,
            )
