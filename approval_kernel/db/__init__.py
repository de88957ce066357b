"""Database layer - engine, base classes and column types."""

from approval_kernel.db.base import Base, IdentifiedBase, UTCDateTime, UUIDString
from approval_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "IdentifiedBase",
    "UTCDateTime",
    "UUIDString",
]
