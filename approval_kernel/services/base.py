"""
BaseService -- abstract base for all approval kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel.  Services receive a SQLAlchemy
    ``Session`` and persist through ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain.

Invariants enforced:
    - Transaction boundaries belong to the caller (``ApprovalEngine`` or a
      test harness).  The only rollback a service issues is to recover the
      session after its own flush raised ``IntegrityError`` or
      ``StaleDataError``; it then raises a typed error.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from approval_kernel.db.base import Base
from approval_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel write services.

    Contract:
        Accepts a ``Session`` from the caller and an optional ``Clock``.
        All timestamps come from the clock.

    Non-goals:
        - Does NOT manage the transaction lifecycle.
        - Does NOT provide read projections -- those belong in
          ``approval_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
