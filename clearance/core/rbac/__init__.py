"""RBAC (Role-Based Access Control) core for clearance.

This module defines the role and permission model, effective-permission
resolution, access decisions, role-assignment rules and catalog
administration.
"""

from .decisions import Decision, DenyReason
from .errors import CatalogInvariantViolation, NotFound, PermissionDeniedError, RBACError
from .permissions import OwnerRelationship, Permission, PermissionCatalog, Scope
from .roles import Role, RoleCatalog
from .grants import DepartmentPermissionTable, RoleGrant, RolePermissionGrants
from .snapshot import CatalogSnapshot, SnapshotHolder, build_snapshot
from .resolver import EffectivePermissionSet, PermissionResolver, Principal
from .engine import AccessDecisionEngine, AccessRequest
from .assignment import DepartmentRoleDefaults, RoleAssignmentGuard
from .service import AccessControlService, AuditedDecision
from .admin import CatalogAdministrator
from .checker import PermissionChecker, PermissionDependency, require_permission

__all__ = [
    "AccessControlService",
    "AccessDecisionEngine",
    "AccessRequest",
    "AuditedDecision",
    "CatalogAdministrator",
    "CatalogInvariantViolation",
    "CatalogSnapshot",
    "Decision",
    "DenyReason",
    "DepartmentPermissionTable",
    "DepartmentRoleDefaults",
    "EffectivePermissionSet",
    "NotFound",
    "OwnerRelationship",
    "Permission",
    "PermissionCatalog",
    "PermissionChecker",
    "PermissionDeniedError",
    "PermissionDependency",
    "PermissionResolver",
    "Principal",
    "RBACError",
    "Role",
    "RoleAssignmentGuard",
    "RoleCatalog",
    "RoleGrant",
    "RolePermissionGrants",
    "SnapshotHolder",
    "build_snapshot",
    "require_permission",
]
