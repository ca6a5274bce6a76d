"""Exceptions raised by the planner services."""


class PlannerError(RuntimeError):
    """Base exception for planner operations."""


class StoreError(PlannerError):
    """Raised when the entity store rejects a read or write."""


class PermissionDenied(PlannerError):
    """Raised when the acting user lacks the admin role."""


class NotFound(PlannerError):
    """Raised when a referenced record does not exist."""


class AccountError(PlannerError):
    """Raised when the authentication service refuses an account operation."""


__all__ = [
    "PlannerError",
    "StoreError",
    "PermissionDenied",
    "NotFound",
    "AccountError",
]
