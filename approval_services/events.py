"""
approval_services.events -- Completion event dispatch.

Responsibility:
    Holds subscribers for ``ApprovalCompleted`` and notifies them after a
    terminal decision has committed.  Document services (quotations,
    purchase orders) subscribe to move their own documents forward.

Invariants enforced:
    - Handlers run after commit; a handler can never undo a decision.
    - A failing handler is logged and does not stop the others.
"""

from __future__ import annotations

from collections.abc import Callable

from approval_kernel.domain.approval import ApprovalCompleted
from approval_kernel.logging_config import get_logger

logger = get_logger("services.events")

CompletionHandler = Callable[[ApprovalCompleted], None]


class CompletionEventBus:
    """In-process subscriber list for ApprovalCompleted."""

    def __init__(self) -> None:
        self._handlers: list[CompletionHandler] = []

    def subscribe(self, handler: CompletionHandler) -> CompletionHandler:
        self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: CompletionHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: ApprovalCompleted) -> int:
        """Deliver ``event`` to every handler; return how many succeeded."""
        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.error(
                    "approval_completion_handler_failed",
                    extra={
                        "request_id": str(event.request_id),
                        "status": event.status.value,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                    exc_info=True,
                )
                continue
            delivered += 1

        logger.info(
            "approval_completion_published",
            extra={
                "request_id": str(event.request_id),
                "status": event.status.value,
                "delivered": delivered,
                "handlers": len(self._handlers),
            },
        )
        return delivered
