"""Audit event construction for authorization and role-management decisions.

``build_audit_event`` is a pure transformation: it returns an immutable
record and writes nothing. The caller hands the record to whatever audit
store the application uses. Events keep the full deny reason; user-facing
responses must not.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

if TYPE_CHECKING:
    from clearance.core.rbac.decisions import Decision


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""
    DEBUG = "debug"       # Low-level debugging info
    INFO = "info"         # Standard operations
    WARNING = "warning"   # Potentially concerning actions
    ERROR = "error"       # Failed operations
    CRITICAL = "critical" # Security-relevant events (permission denials)


class AuditAction(str, Enum):
    """Actions the RBAC core produces events for."""

    AUTHORIZE = "authorize"
    ASSIGN_ROLE = "assign_role"
    RESET_ROLE_TO_DEPARTMENT_DEFAULT = "reset_role_to_department_default"
    UPSERT_ROLE = "upsert_role"
    DELETE_ROLE = "delete_role"
    UPSERT_PERMISSION = "upsert_permission"
    DEACTIVATE_PERMISSION = "deactivate_permission"
    REACTIVATE_PERMISSION = "reactivate_permission"
    GRANT_PERMISSION = "grant_permission"
    REVOKE_PERMISSION = "revoke_permission"
    ADD_DEPARTMENT_PERMISSION = "add_department_permission"
    REMOVE_DEPARTMENT_PERMISSION = "remove_department_permission"


# Detail keys whose values never reach an audit record
SENSITIVE_FIELDS = {
    "password",
    "password_hash",
    "token",
    "access_token",
    "refresh_token",
    "api_key",
    "secret",
    "client_secret",
}


def redact_sensitive(data: Any) -> Any:
    """Redact sensitive fields from data."""
    if isinstance(data, Mapping):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_FIELDS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [redact_sensitive(item) for item in data]
    return data


def freeze(data: Any) -> Any:
    """Read-only deep copy: mappings become proxies, lists become tuples."""
    if isinstance(data, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in data.items()})
    elif isinstance(data, (list, tuple, set, frozenset)):
        return tuple(freeze(item) for item in data)
    return data


def thaw(data: Any) -> Any:
    """Plain dicts and lists again, for serialization."""
    if isinstance(data, Mapping):
        return {k: thaw(v) for k, v in data.items()}
    elif isinstance(data, tuple):
        return [thaw(item) for item in data]
    return data


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(subject: Any) -> Dict[str, Any]:
    if subject is None:
        return {}
    if hasattr(subject, "to_dict"):
        return subject.to_dict()
    if isinstance(subject, Mapping):
        return dict(subject)
    return {"id": str(subject)}


@dataclass(frozen=True)
class AuditEvent:
    """Immutable audit record."""

    event_id: str
    occurred_at: datetime
    action: str
    actor: Mapping[str, Any]
    target: Mapping[str, Any]
    verdict: str
    reason: Optional[str]
    severity: AuditSeverity
    details: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    request_id: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.verdict == "allow"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for an audit store."""
        return {
            "event_id": self.event_id,
            "occurred_at": self.occurred_at.isoformat(),
            "action": self.action,
            "actor": thaw(self.actor),
            "target": thaw(self.target),
            "verdict": self.verdict,
            "reason": self.reason,
            "severity": self.severity.value,
            "details": thaw(self.details),
            "request_id": self.request_id,
        }


def determine_severity(decision: Optional["Decision"], action: str) -> AuditSeverity:
    """Denials are security-relevant; successful changes are routine."""
    if decision is not None and not decision.allowed:
        return AuditSeverity.CRITICAL
    if action == AuditAction.AUTHORIZE.value:
        return AuditSeverity.DEBUG
    return AuditSeverity.INFO


def build_audit_event(
    actor: Any,
    action: Any,
    target: Any,
    decision: Optional["Decision"] = None,
    *,
    details: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    clock: Callable[[], datetime] = _utcnow,
    id_factory: Callable[[], Any] = uuid.uuid4,
) -> AuditEvent:
    """
    Turn a decision or administrative change into an audit event.

    Args:
        actor: Principal, Role, identifier or mapping describing who acted
        action: AuditAction or free-form action name
        target: Principal, Role, AccessRequest, identifier or mapping acted upon
        decision: The verdict; ``None`` records an unconditional change
        details: Extra context, redacted before it is stored on the event
        request_id: Correlation id from the request layer
        clock: Timestamp source
        id_factory: Event id source

    Returns:
        A new AuditEvent
    """
    action_name = action.value if isinstance(action, AuditAction) else str(action)
    merged = dict(details or {})
    if decision is not None and decision.detail:
        merged.setdefault("decision_detail", decision.detail)

    return AuditEvent(
        event_id=str(id_factory()),
        occurred_at=clock(),
        action=action_name,
        actor=freeze(redact_sensitive(_describe(actor))),
        target=freeze(redact_sensitive(_describe(target))),
        verdict=decision.verdict if decision is not None else "allow",
        reason=decision.reason.value if decision is not None and decision.reason else None,
        severity=determine_severity(decision, action_name),
        details=freeze(redact_sensitive(merged)),
        request_id=request_id,
    )
