"""Exceptions raised by the RBAC core.

Evaluation-path problems (unknown role, unknown or inactive permission) are
never raised; they come back as typed Deny decisions. Only administrative
writes raise.
"""

from typing import Optional


class RBACError(Exception):
    """Base class for RBAC errors."""


class CatalogInvariantViolation(RBACError):
    """Raised when a catalog write would break a catalog invariant.

    The write is rejected as a whole; no partial snapshot is published.
    """

    def __init__(self, message: str, *, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class NotFound(RBACError, KeyError):
    """Raised by catalog lookups for an unknown role or permission."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class PermissionDeniedError(RBACError):
    """Raised when an actor is refused an administrative operation.

    Carries the Deny decision so callers can audit the full reason while
    showing users only a generic message.
    """

    def __init__(self, decision, event=None):
        super().__init__(f"Permission denied: {decision.reason.value}")
        self.decision = decision
        self.event = event
