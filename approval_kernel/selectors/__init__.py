"""Read-only selectors returning frozen DTOs."""

from approval_kernel.selectors.approval_selector import ApprovalSelector

__all__ = ["ApprovalSelector"]
