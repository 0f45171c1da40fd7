"""Administrative writes to the role and permission catalogs.

Every write is checked against the acting principal, applied to a copy of
the current snapshot, persisted through the store, and only then published.
Each write needs ``system.roles`` at organization scope. A write that
touches a role also passes the assignment guard for it, and a write that
hands out a permission or tag requires the actor to hold it. An actor
therefore cannot raise a role, its own included, above its grantable
level, nor grant what it does not hold. Any failure along the way leaves
the published snapshot as it was.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union

from clearance.common.logger import log_audit_event
from clearance.core.audit import AuditAction, AuditEvent, build_audit_event

from .assignment import RoleAssignmentGuard
from .decisions import Decision, DenyReason
from .engine import AccessDecisionEngine
from .errors import CatalogInvariantViolation, PermissionDeniedError
from .grants import RoleGrant
from .permissions import Permission
from .resolver import EffectivePermissionSet, PermissionResolver, Principal
from .roles import Role
from .snapshot import CatalogSnapshot, SnapshotHolder

logger = logging.getLogger(__name__)

RoleRef = Union[str, Role]


class CatalogAdministrator:
    """Applies catalog changes on behalf of an acting principal."""

    def __init__(
        self,
        holder: SnapshotHolder,
        store=None,
        *,
        guard: Optional[RoleAssignmentGuard] = None,
    ):
        """
        Args:
            holder: Snapshot holder to publish changes through
            store: Optional CatalogStore that receives each change before publication
            guard: Assignment guard applied to grant and revoke
        """
        self.holder = holder
        self.store = store
        self.guard = guard or RoleAssignmentGuard()
        # Administrative checks always resolve fresh
        self._resolver = PermissionResolver(holder, cache_enabled=False)
        self._engine = AccessDecisionEngine(holder)

    # -- Roles ------------------------------------------------------------

    def upsert_role(self, actor: Principal, role: Role) -> AuditEvent:
        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            existing = snapshot.roles.find(role.id)
            if existing is not None and existing.is_system_role and not role.is_system_role:
                raise CatalogInvariantViolation(
                    f"System role {existing.name} cannot lose its system flag",
                    subject=role.id,
                )
            successor = snapshot.evolve(roles=snapshot.roles.with_role(role))
            self._persist("upsert_role", role)
            return successor

        # Both the stored record and its replacement must be within reach
        return self._apply(
            actor, AuditAction.UPSERT_ROLE, role, change, target_roles=(role.id, role)
        )

    def delete_role(self, actor: Principal, role_key: str) -> AuditEvent:
        """Remove a non-system role and every grant made to it."""
        target: Dict[str, Any] = {"role": role_key}

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            role = snapshot.roles.get(role_key)
            if role.is_system_role:
                raise CatalogInvariantViolation(
                    f"System role {role.name} cannot be deleted", subject=role.id
                )
            target.update(role.to_dict())
            successor = snapshot.evolve(
                roles=snapshot.roles.without_role(role.id),
                grants=snapshot.grants.without_role(role.id),
            )
            self._persist("delete_role", role.id)
            return successor

        return self._apply(
            actor, AuditAction.DELETE_ROLE, target, change, target_roles=(role_key,)
        )

    # -- Permissions ------------------------------------------------------

    def upsert_permission(self, actor: Principal, permission: Permission) -> AuditEvent:
        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            successor = snapshot.evolve(
                permissions=snapshot.permissions.with_permission(permission)
            )
            self._persist("upsert_permission", permission)
            return successor

        return self._apply(actor, AuditAction.UPSERT_PERMISSION, permission, change)

    def deactivate_permission(self, actor: Principal, name: str) -> AuditEvent:
        """Mark a permission inactive. Grants are kept and stop resolving."""
        return self._set_active(actor, name, False)

    def reactivate_permission(self, actor: Principal, name: str) -> AuditEvent:
        return self._set_active(actor, name, True)

    def _set_active(self, actor: Principal, name: str, active: bool) -> AuditEvent:
        action = (
            AuditAction.REACTIVATE_PERMISSION if active else AuditAction.DEACTIVATE_PERMISSION
        )

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            current = snapshot.permissions.get(name)
            updated = current.reactivated() if active else current.deactivated()
            successor = snapshot.evolve(
                permissions=snapshot.permissions.with_permission(updated)
            )
            self._persist("upsert_permission", updated)
            return successor

        return self._apply(actor, action, {"permission": name}, change)

    # -- Role grants ------------------------------------------------------

    def grant_permission(
        self, actor: Principal, role_key: str, permission: str
    ) -> AuditEvent:
        """Grant a permission to a role. Re-granting an existing pair is a no-op.

        The actor must hold the permission itself.
        """
        target = {"role": role_key, "permission": permission}

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            role = snapshot.roles.get(role_key)
            snapshot.permissions.get(permission)
            if snapshot.grants.has_grant(role.id, permission):
                return snapshot
            grant = RoleGrant(
                role_id=role.id,
                permission=permission,
                granted_by=actor.subject_id or actor.role_id,
            )
            successor = snapshot.evolve(grants=snapshot.grants.with_grant(grant))
            self._persist("upsert_role_grant", grant)
            return successor

        return self._apply(
            actor,
            AuditAction.GRANT_PERMISSION,
            target,
            change,
            target_roles=(role_key,),
            held=permission,
            held_catalogued=True,
        )

    def revoke_permission(
        self, actor: Principal, role_key: str, permission: str
    ) -> AuditEvent:
        target = {"role": role_key, "permission": permission}

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            role = snapshot.roles.get(role_key)
            if not snapshot.grants.has_grant(role.id, permission):
                return snapshot
            successor = snapshot.evolve(
                grants=snapshot.grants.without_grant(role.id, permission)
            )
            self._persist("delete_role_grant", role.id, permission)
            return successor

        return self._apply(
            actor, AuditAction.REVOKE_PERMISSION, target, change, target_roles=(role_key,)
        )

    # -- Department tags --------------------------------------------------

    def add_department_permission(
        self, actor: Principal, department_key: str, tag: str
    ) -> AuditEvent:
        target = {"department_key": department_key, "permission": tag}

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            if tag in snapshot.departments.tags_for(department_key):
                return snapshot
            successor = snapshot.evolve(
                departments=snapshot.departments.with_tag(department_key, tag)
            )
            self._persist("upsert_department_permission", department_key, tag)
            return successor

        return self._apply(
            actor, AuditAction.ADD_DEPARTMENT_PERMISSION, target, change, held=tag
        )

    def remove_department_permission(
        self, actor: Principal, department_key: str, tag: str
    ) -> AuditEvent:
        target = {"department_key": department_key, "permission": tag}

        def change(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            if tag not in snapshot.departments.tags_for(department_key):
                return snapshot
            successor = snapshot.evolve(
                departments=snapshot.departments.without_tag(department_key, tag)
            )
            self._persist("delete_department_permission", department_key, tag)
            return successor

        return self._apply(
            actor, AuditAction.REMOVE_DEPARTMENT_PERMISSION, target, change
        )

    # -- Internals --------------------------------------------------------

    def _apply(
        self,
        actor: Principal,
        action: AuditAction,
        target: Any,
        change: Callable[[CatalogSnapshot], CatalogSnapshot],
        *,
        target_roles: Sequence[RoleRef] = (),
        held: Optional[str] = None,
        held_catalogued: bool = False,
    ) -> AuditEvent:
        """Authorize ``actor`` and run ``change`` under the holder's writer lock.

        Args:
            target_roles: Roles (keys or new records) the actor must be able to assign
            held: Permission or tag the actor must hold itself
            held_catalogued: ``held`` names a catalog permission; an unknown
                name is left to the change to report as NotFound
        """
        before: Dict[str, int] = {}

        def guarded(snapshot: CatalogSnapshot) -> CatalogSnapshot:
            before["version"] = snapshot.version
            decision = self._authorize(
                actor, snapshot, target_roles, held, held_catalogued
            )
            if not decision.allowed:
                event = build_audit_event(actor, action, target, decision)
                log_audit_event(event)
                raise PermissionDeniedError(decision, event)
            return change(snapshot)

        published = self.holder.update(guarded)
        changed = published.version != before["version"]
        if changed:
            logger.info(f"{actor.role_id} applied {action.value} (v{published.version})")
        event = build_audit_event(
            actor,
            action,
            target,
            Decision.allow(),
            details={"snapshot_version": published.version, "changed": changed},
        )
        log_audit_event(event)
        return event

    def _authorize(
        self,
        actor: Principal,
        snapshot: CatalogSnapshot,
        target_roles: Sequence[RoleRef],
        held: Optional[str],
        held_catalogued: bool,
    ) -> Decision:
        effective = self._resolver.resolve(actor, snapshot)
        decision = self._engine.can_administer_catalog(effective, snapshot)
        if not decision.allowed:
            return decision

        if held is not None and held not in effective:
            if not held_catalogued or held in snapshot.permissions:
                return Decision.deny(
                    DenyReason.ACTOR_LACKS_PERMISSION,
                    f"{actor.role_id} does not hold {held}",
                )

        for target_role in target_roles:
            decision = self._guard_grant(effective, snapshot, target_role)
            if not decision.allowed:
                return decision
        return decision

    def _guard_grant(
        self,
        effective: EffectivePermissionSet,
        snapshot: CatalogSnapshot,
        target_role: RoleRef,
    ) -> Decision:
        actor_role = snapshot.roles.find(effective.role_id)
        if actor_role is None:
            return Decision.deny(
                DenyReason.UNKNOWN_ROLE,
                f"role {effective.principal.role_id!r} is not catalogued",
            )
        if isinstance(target_role, Role):
            if target_role.id == actor_role.id and _raises(actor_role, target_role):
                return Decision.deny(
                    DenyReason.EXCEEDS_GRANTABLE_LEVEL,
                    f"{actor_role.name} cannot raise its own role",
                )
            return self.guard.can_assign(actor_role, target_role)

        target = snapshot.roles.find(target_role)
        if target is None:
            # Unknown target surfaces as NotFound from the change itself
            return Decision.allow()
        return self.guard.can_assign(actor_role, target)

    def _persist(self, operation: str, *args) -> None:
        if self.store is None:
            return
        getattr(self.store, operation)(*args)


def _raises(current: Role, proposed: Role) -> bool:
    """Whether ``proposed`` gives the role more reach than ``current``."""
    return (
        proposed.security_clearance_level > current.security_clearance_level
        or proposed.max_security_level > current.max_security_level
        or (proposed.can_assign_roles and not current.can_assign_roles)
        or (proposed.can_manage_users and not current.can_manage_users)
    )
