"""
approval_services -- Package init and public API.

Responsibility:
    Outer orchestration layer.  Owns transaction boundaries and
    post-commit side effects over the flush-only ``approval_kernel``.

Architecture position:
    Dependency direction:
        approval_services/ -> approval_kernel/  (allowed)
        approval_kernel/   -> approval_services/ (FORBIDDEN)
"""

from approval_services.engine import ApprovalEngine
from approval_services.events import CompletionEventBus

__all__ = [
    "ApprovalEngine",
    "CompletionEventBus",
]
