"""
approval_kernel.domain.decision_engine -- Pure sequential decision logic.

Responsibility:
    Evaluates a proposed decision against an ``ApprovalRequest`` snapshot
    and produces the next snapshot.  Owns the level-advancement rules:
    approve below the final level advances ``current_level``; approve at
    the final level completes the request; reject completes the request
    immediately and leaves later levels untouched.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The persistence
    shell (``ApprovalService``) loads the aggregate, calls
    ``evaluate_decision`` then ``apply_outcome``, and writes the result.

Invariants enforced:
    - Validation order is fixed: version, status, level, approver, reason.
      The first failing check determines the error.
    - Levels below ``current_level`` are decided; levels at or above it are
      PENDING, except the deciding level of a terminal request.
    - ``version`` increases by exactly one per successful decision.

Failure modes:
    - ApprovalConflictError when the caller's version is stale.
    - ApprovalAlreadyCompletedError on a terminal request.
    - WrongApprovalLevelError when ``level_order != current_level``.
    - UnauthorizedApproverError when the actor is not the level's approver.
    - MissingRejectionReasonError on a reject with a blank comment.
    - InvalidChainConfigurationError from ``snapshot_levels`` for an empty
      chain.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from approval_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    ChainTemplate,
    HistoryAction,
    LevelDecision,
    LevelDecisionStatus,
)
from approval_kernel.exceptions import (
    ApprovalAlreadyCompletedError,
    ApprovalConflictError,
    InvalidChainConfigurationError,
    MissingRejectionReasonError,
    UnauthorizedApproverError,
    WrongApprovalLevelError,
)


@dataclass(frozen=True)
class DecisionOutcome:
    """Result of evaluating one decision.

    ``next_status`` is PENDING when the request advances to another level.
    """

    decision: ApprovalDecision
    level_order: int
    level_status: LevelDecisionStatus
    next_status: ApprovalStatus
    next_level: int
    history_action: HistoryAction

    @property
    def is_terminal(self) -> bool:
        return self.next_status != ApprovalStatus.PENDING


def _is_blank(text: str | None) -> bool:
    return text is None or not text.strip()


def snapshot_levels(template: ChainTemplate) -> tuple[LevelDecision, ...]:
    """Copy template levels into PENDING level decisions, ordered by level.

    Raises:
        InvalidChainConfigurationError: If the template has no levels.
    """
    if not template.has_levels:
        raise InvalidChainConfigurationError(
            template.document_type.value,
            "chain template has no levels",
        )
    return tuple(
        LevelDecision(
            level_order=level.order,
            display_name=level.display_name,
            expected_approver=level.approver,
        )
        for level in sorted(template.levels, key=lambda lvl: lvl.order)
    )


def evaluate_decision(
    request: ApprovalRequest,
    *,
    level_order: int,
    actor: str,
    decision: ApprovalDecision,
    comment: str | None,
    expected_version: int,
) -> DecisionOutcome:
    """Validate a decision and describe its effect without applying it."""
    request_id = str(request.request_id)

    if expected_version != request.version:
        raise ApprovalConflictError(
            request_id,
            expected_version=expected_version,
            actual_version=request.version,
        )

    if request.status != ApprovalStatus.PENDING:
        raise ApprovalAlreadyCompletedError(request_id, request.status.value)

    if level_order != request.current_level:
        raise WrongApprovalLevelError(request_id, level_order, request.current_level)

    level = request.level(level_order)
    if level is None or actor != level.expected_approver:
        raise UnauthorizedApproverError(request_id, level_order, actor)

    if decision == ApprovalDecision.REJECT:
        if _is_blank(comment):
            raise MissingRejectionReasonError(request_id, level_order)
        return DecisionOutcome(
            decision=decision,
            level_order=level_order,
            level_status=LevelDecisionStatus.REJECTED,
            next_status=ApprovalStatus.REJECTED,
            next_level=request.current_level,
            history_action=HistoryAction.REJECTED,
        )

    if request.is_at_final_level:
        return DecisionOutcome(
            decision=decision,
            level_order=level_order,
            level_status=LevelDecisionStatus.APPROVED,
            next_status=ApprovalStatus.APPROVED,
            next_level=request.current_level,
            history_action=HistoryAction.APPROVED,
        )

    return DecisionOutcome(
        decision=decision,
        level_order=level_order,
        level_status=LevelDecisionStatus.APPROVED,
        next_status=ApprovalStatus.PENDING,
        next_level=request.current_level + 1,
        history_action=HistoryAction.APPROVED,
    )


def apply_outcome(
    request: ApprovalRequest,
    outcome: DecisionOutcome,
    *,
    actor: str,
    comment: str | None,
    decided_at: datetime,
) -> ApprovalRequest:
    """Return the request snapshot after the outcome takes effect."""
    if outcome.is_terminal:
        allowed = APPROVAL_TRANSITIONS[request.status]
        if outcome.next_status not in allowed:
            raise ApprovalAlreadyCompletedError(
                str(request.request_id), request.status.value,
            )

    decided_comment = comment.strip() if comment and comment.strip() else None
    levels = tuple(
        replace(
            level,
            decision=outcome.level_status,
            decided_by=actor,
            decided_at=decided_at,
            comment=decided_comment,
        )
        if level.level_order == outcome.level_order
        else level
        for level in request.level_decisions
    )

    return replace(
        request,
        level_decisions=levels,
        status=outcome.next_status,
        current_level=outcome.next_level,
        completed_at=decided_at if outcome.is_terminal else None,
        version=request.version + 1,
    )


def check_level_invariant(request: ApprovalRequest) -> bool:
    """True when level decisions agree with ``current_level`` and ``status``.

    PENDING: every level below ``current_level`` is APPROVED and every level
    at or above it is PENDING.  Terminal: levels below are APPROVED, the
    current level carries the terminal decision, later levels are PENDING.
    """
    if len(request.level_decisions) != request.total_levels:
        return False
    if not 1 <= request.current_level <= request.total_levels:
        return False

    for level in request.level_decisions:
        if level.level_order < request.current_level:
            if level.decision != LevelDecisionStatus.APPROVED:
                return False
        elif level.level_order > request.current_level:
            if level.decision != LevelDecisionStatus.PENDING:
                return False

    current = request.current_level_decision
    if request.status == ApprovalStatus.PENDING:
        return current.decision == LevelDecisionStatus.PENDING
    if request.status == ApprovalStatus.APPROVED:
        return (
            request.is_at_final_level
            and current.decision == LevelDecisionStatus.APPROVED
        )
    return current.decision == LevelDecisionStatus.REJECTED
