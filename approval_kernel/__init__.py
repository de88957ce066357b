"""
Approval Kernel

A sequential multi-level approval workflow engine with:
- Per-document approval chains snapshotted from configurable templates
- Strict level ordering and rejection-terminates-chain semantics
- Optimistic concurrency on the approval aggregate
- Append-only decision history and comments
"""

__version__ = "0.1.0"
