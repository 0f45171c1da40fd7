"""Catalog persistence.

A CatalogStore is the persistence boundary of the RBAC core: it loads the
four catalog tables and accepts individual upserts and deletes. The core
only ever reads a store to build a snapshot and writes to it just before
publishing a change.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from clearance.core.rbac.defaults import build_default_snapshot
from clearance.core.rbac.grants import (
    DepartmentPermissionTable,
    RoleGrant,
    RolePermissionGrants,
)
from clearance.core.rbac.permissions import Permission, PermissionCatalog, Scope
from clearance.core.rbac.roles import Role, RoleCatalog
from clearance.core.rbac.snapshot import CatalogSnapshot, build_snapshot
from clearance.db.models import (
    DepartmentPermissionRecord,
    PermissionRecord,
    RoleGrantRecord,
    RoleRecord,
)

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Persistence boundary for roles, permissions and grants."""

    def load_roles(self) -> List[Role]: ...

    def load_permissions(self) -> List[Permission]: ...

    def load_role_grants(self) -> List[RoleGrant]: ...

    def load_department_permissions(self) -> List[Tuple[str, str]]: ...

    def upsert_role(self, role: Role) -> None: ...

    def upsert_permission(self, permission: Permission) -> None: ...

    def upsert_role_grant(self, grant: RoleGrant) -> None: ...

    def upsert_department_permission(self, department_key: str, tag: str) -> None: ...

    def delete_role(self, role_id: str) -> None: ...

    def delete_role_grant(self, role_id: str, permission: str) -> None: ...

    def delete_department_permission(self, department_key: str, tag: str) -> None: ...

    def seed(self, snapshot: CatalogSnapshot) -> None: ...


class InMemoryCatalogStore:
    """Dict-backed store for tests and embedded use."""

    def __init__(self):
        self.roles: Dict[str, Role] = {}
        self.permissions: Dict[str, Permission] = {}
        self.grants: Dict[Tuple[str, str], RoleGrant] = {}
        self.departments: Dict[Tuple[str, str], None] = {}

    def load_roles(self) -> List[Role]:
        return list(self.roles.values())

    def load_permissions(self) -> List[Permission]:
        return list(self.permissions.values())

    def load_role_grants(self) -> List[RoleGrant]:
        return list(self.grants.values())

    def load_department_permissions(self) -> List[Tuple[str, str]]:
        return list(self.departments)

    def upsert_role(self, role: Role) -> None:
        self.roles[role.id] = role

    def upsert_permission(self, permission: Permission) -> None:
        self.permissions[permission.name] = permission

    def upsert_role_grant(self, grant: RoleGrant) -> None:
        self.grants.setdefault(grant.key, grant)

    def upsert_department_permission(self, department_key: str, tag: str) -> None:
        self.departments[(department_key, tag)] = None

    def delete_role(self, role_id: str) -> None:
        self.roles.pop(role_id, None)
        for key in [k for k in self.grants if k[0] == role_id]:
            del self.grants[key]

    def delete_role_grant(self, role_id: str, permission: str) -> None:
        self.grants.pop((role_id, permission), None)

    def delete_department_permission(self, department_key: str, tag: str) -> None:
        self.departments.pop((department_key, tag), None)

    def seed(self, snapshot: CatalogSnapshot) -> None:
        """Replace the contents with ``snapshot`` in one step."""
        roles = {role.id: role for role in snapshot.roles}
        permissions = {permission.name: permission for permission in snapshot.permissions}
        grants = {grant.key: grant for grant in snapshot.grants}
        departments = {entry: None for entry in snapshot.departments.items()}
        self.roles, self.permissions = roles, permissions
        self.grants, self.departments = grants, departments


class SqlCatalogStore:
    """SQLAlchemy-backed store.

    Each upsert or delete commits on its own; ``seed`` writes the whole
    catalog in a single transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # -- Loading ----------------------------------------------------------

    def load_roles(self) -> List[Role]:
        return [_role_from_record(r) for r in self.db.query(RoleRecord).all()]

    def load_permissions(self) -> List[Permission]:
        return [_permission_from_record(p) for p in self.db.query(PermissionRecord).all()]

    def load_role_grants(self) -> List[RoleGrant]:
        return [
            RoleGrant(
                role_id=g.role_id,
                permission=g.permission,
                granted_by=g.granted_by,
                granted_at=g.granted_at,
            )
            for g in self.db.query(RoleGrantRecord).all()
        ]

    def load_department_permissions(self) -> List[Tuple[str, str]]:
        return [
            (d.department_key, d.permission)
            for d in self.db.query(DepartmentPermissionRecord).all()
        ]

    # -- Writes -----------------------------------------------------------

    def upsert_role(self, role: Role) -> None:
        self._stage_role(role)
        self._commit()

    def upsert_permission(self, permission: Permission) -> None:
        self._stage_permission(permission)
        self._commit()

    def upsert_role_grant(self, grant: RoleGrant) -> None:
        if self._stage_role_grant(grant):
            self._commit()

    def upsert_department_permission(self, department_key: str, tag: str) -> None:
        if self._stage_department_permission(department_key, tag):
            self._commit()

    def seed(self, snapshot: CatalogSnapshot) -> None:
        try:
            for permission in snapshot.permissions:
                self._stage_permission(permission)
            for role in snapshot.roles:
                self._stage_role(role)
            # Roles and permissions must exist before grants reference them
            self.db.flush()
            for grant in snapshot.grants:
                self._stage_role_grant(grant)
            for department_key, tag in snapshot.departments.items():
                self._stage_department_permission(department_key, tag)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _stage_role(self, role: Role) -> None:
        record = self.db.get(RoleRecord, role.id) or RoleRecord(id=role.id)
        record.name = role.name
        record.display_name = role.display_name
        record.description = role.description
        record.security_clearance_level = role.security_clearance_level
        record.max_security_level = role.max_security_level
        record.priority = role.priority
        record.is_system_role = role.is_system_role
        record.can_assign_roles = role.can_assign_roles
        record.can_manage_users = role.can_manage_users
        self.db.add(record)

    def _stage_permission(self, permission: Permission) -> None:
        record = self.db.get(PermissionRecord, permission.name) or PermissionRecord(
            name=permission.name
        )
        record.display_name = permission.display_name
        record.description = permission.description
        record.module = permission.module
        record.category = permission.category
        record.action = permission.action
        record.scope = permission.scope.value
        record.security_level = permission.security_level
        record.requires_approval = permission.requires_approval
        record.is_active = permission.is_active
        self.db.add(record)

    def _stage_role_grant(self, grant: RoleGrant) -> bool:
        if self.db.get(RoleGrantRecord, (grant.role_id, grant.permission)) is not None:
            return False
        self.db.add(
            RoleGrantRecord(
                role_id=grant.role_id,
                permission=grant.permission,
                granted_by=grant.granted_by,
                granted_at=_naive_utc(grant.granted_at),
            )
        )
        return True

    def _stage_department_permission(self, department_key: str, tag: str) -> bool:
        if self.db.get(DepartmentPermissionRecord, (department_key, tag)) is not None:
            return False
        self.db.add(DepartmentPermissionRecord(department_key=department_key, permission=tag))
        return True

    def delete_role(self, role_id: str) -> None:
        self.db.query(RoleGrantRecord).filter(RoleGrantRecord.role_id == role_id).delete()
        self.db.query(RoleRecord).filter(RoleRecord.id == role_id).delete()
        self._commit()

    def delete_role_grant(self, role_id: str, permission: str) -> None:
        self.db.query(RoleGrantRecord).filter(
            RoleGrantRecord.role_id == role_id,
            RoleGrantRecord.permission == permission,
        ).delete()
        self._commit()

    def delete_department_permission(self, department_key: str, tag: str) -> None:
        self.db.query(DepartmentPermissionRecord).filter(
            DepartmentPermissionRecord.department_key == department_key,
            DepartmentPermissionRecord.permission == tag,
        ).delete()
        self._commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def _role_from_record(record: RoleRecord) -> Role:
    return Role(
        id=record.id,
        name=record.name,
        display_name=record.display_name or "",
        description=record.description or "",
        security_clearance_level=record.security_clearance_level,
        max_security_level=record.max_security_level,
        priority=record.priority or 0,
        is_system_role=bool(record.is_system_role),
        can_assign_roles=bool(record.can_assign_roles),
        can_manage_users=bool(record.can_manage_users),
    )


def _permission_from_record(record: PermissionRecord) -> Permission:
    return Permission(
        name=record.name,
        module=record.module,
        action=record.action,
        scope=Scope(record.scope),
        category=record.category,
        security_level=record.security_level,
        display_name=record.display_name or "",
        description=record.description or "",
        requires_approval=bool(record.requires_approval),
        is_active=bool(record.is_active),
    )


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Columns are naive UTC, like the rest of the schema
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def load_snapshot(store: CatalogStore, *, version: int = 1) -> CatalogSnapshot:
    """Build a validated snapshot from everything the store holds.

    Raises:
        CatalogInvariantViolation: If stored rows break a catalog invariant
    """
    departments: Dict[str, List[str]] = {}
    for department_key, tag in store.load_department_permissions():
        departments.setdefault(department_key, []).append(tag)

    snapshot = build_snapshot(
        roles=RoleCatalog(store.load_roles()),
        permissions=PermissionCatalog(store.load_permissions()),
        grants=RolePermissionGrants(store.load_role_grants()),
        departments=DepartmentPermissionTable(departments),
        version=version,
    )
    logger.info(f"Loaded catalog from store: {snapshot.summary()}")
    return snapshot


def seed_catalog(store: CatalogStore, snapshot: Optional[CatalogSnapshot] = None) -> bool:
    """Write ``snapshot`` (default: the built-in catalog) into an empty store.

    A store that already holds roles is left untouched, so administrative
    changes survive restarts. The seed is written in one step: if it fails,
    the store stays empty and the next start seeds again. Returns True if
    the seed was written.
    """
    if store.load_roles():
        logger.info("Catalog store already seeded; skipping")
        return False
    snapshot = snapshot or build_default_snapshot()
    store.seed(snapshot)
    logger.info(f"Seeded catalog store: {snapshot.summary()}")
    return True
