"""Access control service.

Single entry point for callers outside the RBAC core. Exposes the four call
contracts (resolve, authorize, can-assign, audit) over one published
snapshot holder, plus the role-assignment workflows built on them.

The service never stores which role a subject holds; assignment methods
return the verdict, the role to apply and the audit event, and the caller
updates its user records.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from clearance.common.logger import log_audit_event
from clearance.core.audit import AuditAction, AuditEvent, build_audit_event

from .assignment import DepartmentRoleDefaults, RoleAssignmentGuard
from .decisions import Decision, DenyReason
from .engine import AccessDecisionEngine, AccessRequest
from .resolver import (
    UNASSIGNED_DEPARTMENT,
    EffectivePermissionSet,
    PermissionResolver,
    Principal,
)
from .roles import Role
from .snapshot import CatalogSnapshot, SnapshotHolder

logger = logging.getLogger(__name__)

RoleRef = Union[str, Role]


@dataclass(frozen=True)
class AuditedDecision:
    """A verdict together with the audit event describing it."""

    decision: Decision
    event: AuditEvent
    role: Optional[Role] = None

    @property
    def allowed(self) -> bool:
        return self.decision.allowed


class AccessControlService:
    """Facade over resolver, engine and assignment guard."""

    def __init__(
        self,
        holder: SnapshotHolder,
        *,
        guard: Optional[RoleAssignmentGuard] = None,
        department_defaults: Optional[DepartmentRoleDefaults] = None,
        cache_enabled: bool = True,
        unassigned_department: str = UNASSIGNED_DEPARTMENT,
    ):
        self.holder = holder
        self.unassigned_department = unassigned_department
        self.resolver = PermissionResolver(holder, cache_enabled=cache_enabled)
        self.engine = AccessDecisionEngine(holder)
        self.guard = guard or RoleAssignmentGuard()
        self.department_defaults = department_defaults or DepartmentRoleDefaults()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self.holder.current

    # -- Call contracts ---------------------------------------------------

    def resolve_permissions(
        self,
        principal: Principal,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> EffectivePermissionSet:
        return self.resolver.resolve(principal, snapshot)

    def authorize(
        self,
        effective: EffectivePermissionSet,
        request: AccessRequest,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> Decision:
        return self.engine.authorize(effective, request, snapshot)

    def can_assign_role(
        self,
        actor_role: RoleRef,
        target_role: RoleRef,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> Decision:
        """Guard verdict for actor -> target; role keys are looked up by id or name."""
        snapshot = snapshot or self.snapshot
        actor = self._lookup_role(actor_role, snapshot)
        if actor is None:
            return Decision.deny(DenyReason.UNKNOWN_ROLE, f"unknown actor role {actor_role!r}")
        target = self._lookup_role(target_role, snapshot)
        if target is None:
            return Decision.deny(DenyReason.UNKNOWN_ROLE, f"unknown target role {target_role!r}")
        return self.guard.can_assign(actor, target)

    def build_audit_event(
        self,
        actor: Any,
        action: Any,
        target: Any,
        decision: Optional[Decision] = None,
        **kwargs,
    ) -> AuditEvent:
        return build_audit_event(actor, action, target, decision, **kwargs)

    # -- Conveniences -----------------------------------------------------

    def principal(
        self,
        role_id: str,
        department_key: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> Principal:
        """Build a principal; a missing department becomes the unassigned key."""
        return Principal(
            role_id=role_id,
            department_key=department_key or self.unassigned_department,
            subject_id=subject_id,
        )

    def check(self, principal: Principal, request: AccessRequest) -> Decision:
        """Resolve and authorize against one snapshot."""
        snapshot = self.snapshot
        effective = self.resolver.resolve(principal, snapshot)
        return self.engine.authorize(effective, request, snapshot)

    def authorize_with_audit(
        self,
        principal: Principal,
        request: AccessRequest,
        *,
        request_id: Optional[str] = None,
    ) -> AuditedDecision:
        decision = self.check(principal, request)
        event = build_audit_event(
            principal, AuditAction.AUTHORIZE, request, decision, request_id=request_id
        )
        log_audit_event(event)
        return AuditedDecision(decision=decision, event=event)

    def assignable_roles(self, actor_role: RoleRef) -> List[Role]:
        """Every role the actor may assign, by priority. Unknown actor -> none."""
        snapshot = self.snapshot
        actor = self._lookup_role(actor_role, snapshot)
        if actor is None:
            return []
        return self.guard.assignable_roles(actor, snapshot.roles)

    def suggest_role(self, department_key: Optional[str]) -> Role:
        return self.department_defaults.suggest_role(department_key, self.snapshot.roles)

    # -- Assignment workflows ---------------------------------------------

    def assign_role(
        self,
        actor: Principal,
        target_role: RoleRef,
        *,
        subject_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> AuditedDecision:
        """Check that ``actor`` may give ``target_role`` to ``subject_id``."""
        return self._assign(
            actor,
            target_role,
            AuditAction.ASSIGN_ROLE,
            subject_id=subject_id,
            details=details,
            request_id=request_id,
        )

    def reset_to_department_default(
        self,
        actor: Principal,
        department_key: Optional[str],
        *,
        subject_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> AuditedDecision:
        """Assign the department's suggested role; the guard still applies."""
        return self._assign(
            actor,
            self.department_defaults.suggest(department_key),
            AuditAction.RESET_ROLE_TO_DEPARTMENT_DEFAULT,
            subject_id=subject_id,
            details={"department_key": department_key},
            request_id=request_id,
        )

    def _assign(
        self,
        actor: Principal,
        target_role: RoleRef,
        action: AuditAction,
        *,
        subject_id: Optional[str],
        details: Optional[Mapping[str, Any]],
        request_id: Optional[str],
    ) -> AuditedDecision:
        snapshot = self.snapshot
        decision = self.can_assign_role(actor.role_id, target_role, snapshot)
        role = self._lookup_role(target_role, snapshot)

        target = {"subject_id": subject_id, "role": role.to_dict() if role else str(target_role)}
        event = build_audit_event(
            actor, action, target, decision, details=details, request_id=request_id
        )
        log_audit_event(event)
        if decision.allowed:
            logger.info(f"{actor.role_id} assigned {role.name} to {subject_id!r}")
        else:
            logger.info(
                f"{actor.role_id} refused assignment of {target_role!s} to "
                f"{subject_id!r}: {decision.reason.value}"
            )
        return AuditedDecision(
            decision=decision, event=event, role=role if decision.allowed else None
        )

    @staticmethod
    def _lookup_role(ref: RoleRef, snapshot: CatalogSnapshot) -> Optional[Role]:
        # Role objects are taken as given, so uncatalogued roles can be checked
        if isinstance(ref, Role):
            return ref
        return snapshot.roles.find(ref)
