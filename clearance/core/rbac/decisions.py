"""Allow/Deny verdicts shared by the access engine and the assignment guard."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DenyReason(str, Enum):
    """Why a request was refused. Internal detail, kept out of user responses."""

    # Access decisions
    PERMISSION_NOT_GRANTED = "permission_not_granted"
    SCOPE_INSUFFICIENT = "scope_insufficient"
    PERMISSION_INACTIVE = "permission_inactive"
    UNKNOWN_PERMISSION = "unknown_permission"
    UNKNOWN_ROLE = "unknown_role"
    EVALUATION_ERROR = "evaluation_error"   # fail-closed conversion

    # Role assignment
    ACTOR_CANNOT_ASSIGN_ROLES = "actor_cannot_assign_roles"
    EXCEEDS_GRANTABLE_LEVEL = "exceeds_grantable_level"

    # Catalog administration
    ACTOR_LACKS_PERMISSION = "actor_lacks_permission"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization or role-assignment check."""

    allowed: bool
    reason: Optional[DenyReason] = None
    detail: str = ""

    @classmethod
    def allow(cls, detail: str = "") -> "Decision":
        return cls(allowed=True, detail=detail)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str = "") -> "Decision":
        return cls(allowed=False, reason=reason, detail=detail)

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def verdict(self) -> str:
        return "allow" if self.allowed else "deny"

    def to_dict(self) -> dict:
        return {
            "verdict": self.verdict,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }
