"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval outcomes are shown to people and routed by clients.  Callers must
be able to tell "someone else decided first, refresh" apart from "you are
not the approver for this level" without parsing message strings.

Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ApprovalKernelError:

    ApprovalKernelError (base)
    |
    +-- ApprovalError                    expected, recoverable outcomes
    |   +-- ApprovalNotFoundError
    |   +-- ChainTemplateNotFoundError
    |   +-- ApprovalAlreadyExistsError
    |   +-- ChainTemplateAlreadyExistsError
    |   +-- InvalidChainConfigurationError
    |   +-- ApprovalAlreadyCompletedError
    |   +-- WrongApprovalLevelError
    |   +-- UnauthorizedApproverError
    |   +-- MissingRejectionReasonError
    |   +-- BlankCommentError
    |
    +-- ConcurrencyError
    |   +-- ApprovalConflictError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- PersistenceFailureError          infrastructure, not part of the taxonomy

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                          | Kind                  | When Raised
------------------------------|-----------------------|-----------------------------------
APPROVAL_NOT_FOUND            | NotFound              | Request id / document has no request
CHAIN_TEMPLATE_NOT_FOUND      | NotFound              | No active template for document type
APPROVAL_ALREADY_EXISTS       | AlreadyExists         | PENDING request exists for document
CHAIN_TEMPLATE_ALREADY_EXISTS | AlreadyExists         | Second template for a document type
INVALID_CHAIN_CONFIGURATION   | InvalidConfiguration  | Zero levels, gaps, duplicate orders
APPROVAL_INVALID_STATE        | InvalidState          | Decision on APPROVED/REJECTED request
APPROVAL_WRONG_LEVEL          | WrongLevel            | Level other than current_level
APPROVAL_WRONG_APPROVER       | WrongApprover         | Actor is not the level's approver
APPROVAL_MISSING_REASON       | MissingReason         | Reject without a non-blank comment
APPROVAL_BLANK_COMMENT        | (validation)          | Discussion comment with blank text
OPTIMISTIC_LOCK_CONFLICT      | Conflict              | Stale version on read or write
IMMUTABILITY_VIOLATION        | (integrity)           | UPDATE/DELETE of history or comment
PERSISTENCE_FAILURE           | infrastructure        | Storage unavailable / unexpected DB error

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CONFLICT -> refresh, re-evaluate, then decide again:

    try:
        engine.decide(request_id, level, actor, decision, expected_version=v)
    except ApprovalConflictError:
        fresh = engine.get_request(request_id)
        show_to_approver(fresh)     # current level/approver may have changed

2. EVERYTHING ELSE IN ApprovalError -> terminal for the call, show verbatim:

    except ApprovalError as e:
        return {"error": e.code, "message": str(e)}

3. PersistenceFailureError -> infrastructure alerting, not user feedback.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Approval taxonomy


class ApprovalError(ApprovalKernelError):
    """Base exception for expected, recoverable approval outcomes."""

    code: str = "APPROVAL_ERROR"


class ApprovalNotFoundError(ApprovalError):
    """Approval request does not exist."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, request_ref: str):
        self.request_ref = request_ref
        super().__init__(f"Approval request not found: {request_ref}")


class ChainTemplateNotFoundError(ApprovalError):
    """No active chain template for the document type."""

    code: str = "CHAIN_TEMPLATE_NOT_FOUND"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(
            f"No active approval chain template for document type {document_type}"
        )


class ApprovalAlreadyExistsError(ApprovalError):
    """A PENDING approval request already exists for the document."""

    code: str = "APPROVAL_ALREADY_EXISTS"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(
            f"An active approval request already exists for "
            f"{document_type} {document_id}"
        )


class ChainTemplateAlreadyExistsError(ApprovalError):
    """A chain template already exists for the document type."""

    code: str = "CHAIN_TEMPLATE_ALREADY_EXISTS"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(
            f"Approval chain template already exists for {document_type}"
        )


class InvalidChainConfigurationError(ApprovalError):
    """Chain template levels are empty, non-contiguous, or duplicated."""

    code: str = "INVALID_CHAIN_CONFIGURATION"

    def __init__(self, document_type: str | None, reason: str):
        self.document_type = document_type
        self.reason = reason
        subject = document_type or "chain template"
        super().__init__(f"Invalid approval chain configuration for {subject}: {reason}")


class ApprovalAlreadyCompletedError(ApprovalError):
    """Decision attempted on a request that is no longer PENDING."""

    code: str = "APPROVAL_INVALID_STATE"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Approval request {request_id} is already completed (status: {status})"
        )


class WrongApprovalLevelError(ApprovalError):
    """Decision targets a level other than the request's current level."""

    code: str = "APPROVAL_WRONG_LEVEL"

    def __init__(self, request_id: str, level_order: int, current_level: int):
        self.request_id = request_id
        self.level_order = level_order
        self.current_level = current_level
        super().__init__(
            f"Cannot decide level {level_order} of approval request {request_id}: "
            f"current level is {current_level}"
        )


class UnauthorizedApproverError(ApprovalError):
    """Actor is not the designated approver for the level."""

    code: str = "APPROVAL_WRONG_APPROVER"

    def __init__(self, request_id: str, level_order: int, actor: str):
        self.request_id = request_id
        self.level_order = level_order
        self.actor = actor
        super().__init__(
            f"{actor} is not the approver for level {level_order} "
            f"of approval request {request_id}"
        )


class MissingRejectionReasonError(ApprovalError):
    """Rejection submitted without a reason."""

    code: str = "APPROVAL_MISSING_REASON"

    def __init__(self, request_id: str, level_order: int):
        self.request_id = request_id
        self.level_order = level_order
        super().__init__(
            f"Rejecting level {level_order} of approval request {request_id} "
            "requires a reason"
        )


class BlankCommentError(ApprovalError):
    """Comment text is empty or whitespace."""

    code: str = "APPROVAL_BLANK_COMMENT"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Comment on approval request {request_id} cannot be blank")


# Concurrency-related exceptions


class ConcurrencyError(ApprovalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ApprovalConflictError(ConcurrencyError):
    """Optimistic locking conflict on an approval request."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        request_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.request_id = request_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = ""
        if expected_version is not None and actual_version is not None:
            detail = f" (expected version {expected_version}, found {actual_version})"
        super().__init__(
            f"Optimistic lock conflict on approval request {request_id}: "
            f"request was modified by another decision{detail}"
        )


# Immutability-related exceptions


class ImmutabilityError(ApprovalKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    History entries and comments are insert-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Infrastructure


class PersistenceFailureError(ApprovalKernelError):
    """Storage failure below the aggregate boundary."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence failure during {operation}: {reason}")
