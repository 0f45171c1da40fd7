"""Catalog file loading for clearance.

Handles loading and validation of YAML catalog files, an alternative to the
built-in default catalog. A catalog file looks like::

    roles:
      - id: role_viewer
        name: viewer
        security_clearance_level: 1
        max_security_level: 1
    permissions:
      - name: dashboard.view
        action: view
        scope: own
    role_permissions:
      role_viewer: [dashboard.view]
    department_permissions:
      FINANCE: [financial_reports]
    department_default_roles:
      FINANCE: viewer
    fallback_role: viewer

Every section is optional; string values may reference environment
variables (``$VAR`` or ``${VAR}``).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from clearance.core.rbac.assignment import DEFAULT_FALLBACK_ROLE, DepartmentRoleDefaults
from clearance.core.rbac.errors import CatalogInvariantViolation
from clearance.core.rbac.grants import (
    DepartmentPermissionTable,
    RoleGrant,
    RolePermissionGrants,
)
from clearance.core.rbac.permissions import Permission, PermissionCatalog, Scope
from clearance.core.rbac.roles import Role, RoleCatalog
from clearance.core.rbac.snapshot import CatalogSnapshot, build_snapshot


@dataclass
class CatalogConfig:
    """Typed contents of a catalog file."""

    roles: List[Role] = field(default_factory=list)
    permissions: List[Permission] = field(default_factory=list)
    role_permissions: Dict[str, List[str]] = field(default_factory=dict)
    department_permissions: Dict[str, List[str]] = field(default_factory=dict)
    department_default_roles: Dict[str, str] = field(default_factory=dict)
    fallback_role: str = DEFAULT_FALLBACK_ROLE

    def to_snapshot(self, granted_by: str = "system") -> CatalogSnapshot:
        """Build a validated snapshot from the file contents.

        Raises:
            CatalogInvariantViolation: If the catalog breaks an invariant
        """
        grants = [
            RoleGrant(role_id=role_id, permission=name, granted_by=granted_by)
            for role_id, names in self.role_permissions.items()
            for name in names
        ]
        return build_snapshot(
            roles=RoleCatalog(self.roles),
            permissions=PermissionCatalog(self.permissions),
            grants=RolePermissionGrants(grants),
            departments=DepartmentPermissionTable(self.department_permissions),
        )

    def department_defaults(self) -> DepartmentRoleDefaults:
        return DepartmentRoleDefaults(self.department_default_roles, self.fallback_role)


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def parse_bool(value: Any, field_name: str, subject: str, default: bool = False) -> bool:
    """Parse a boolean entry strictly.

    Accepts real booleans, 0/1 and the strings true/false, yes/no, on/off
    and 1/0 in any case. Anything else is rejected.

    Raises:
        CatalogInvariantViolation: If the value is not a recognizable boolean
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise CatalogInvariantViolation(
        f"{subject}: {field_name} must be a boolean, got {value!r}", subject=subject
    )


def parse_role(role_dict: Dict[str, Any]) -> Role:
    """Parse a role entry.

    ``max_security_level`` defaults to the role's clearance.
    """
    role_id = role_dict.get("id", "")
    clearance = int(role_dict.get("security_clearance_level", 1))
    return Role(
        id=role_id,
        name=role_dict.get("name", ""),
        display_name=role_dict.get("display_name", ""),
        description=role_dict.get("description", ""),
        security_clearance_level=clearance,
        max_security_level=int(role_dict.get("max_security_level", clearance)),
        priority=int(role_dict.get("priority", 0)),
        is_system_role=parse_bool(role_dict.get("is_system_role"), "is_system_role", role_id),
        can_assign_roles=parse_bool(
            role_dict.get("can_assign_roles"), "can_assign_roles", role_id
        ),
        can_manage_users=parse_bool(
            role_dict.get("can_manage_users"), "can_manage_users", role_id
        ),
    )


def parse_permission(permission_dict: Dict[str, Any]) -> Permission:
    """Parse a permission entry.

    ``module`` defaults to the first segment of the dotted name.

    Raises:
        CatalogInvariantViolation: If the scope or a flag is invalid
    """
    name = permission_dict.get("name", "")
    scope = permission_dict.get("scope", Scope.OWN.value)
    try:
        scope = Scope(scope)
    except ValueError:
        raise CatalogInvariantViolation(
            f"Permission {name} has invalid scope {scope!r}", subject=name
        ) from None

    return Permission(
        name=name,
        module=permission_dict.get("module") or name.split(".")[0],
        action=permission_dict.get("action", "view"),
        scope=scope,
        category=permission_dict.get("category", "access"),
        security_level=int(permission_dict.get("security_level", 1)),
        display_name=permission_dict.get("display_name", ""),
        description=permission_dict.get("description", ""),
        requires_approval=parse_bool(
            permission_dict.get("requires_approval"), "requires_approval", name
        ),
        is_active=parse_bool(
            permission_dict.get("is_active"), "is_active", name, default=True
        ),
    )


def parse_catalog_config(config_dict: Dict[str, Any]) -> CatalogConfig:
    """Parse the full catalog dictionary.

    Args:
        config_dict: Catalog dictionary as loaded from YAML

    Returns:
        CatalogConfig instance
    """
    return CatalogConfig(
        roles=[parse_role(r) for r in config_dict.get("roles") or []],
        permissions=[parse_permission(p) for p in config_dict.get("permissions") or []],
        role_permissions={
            role_id: list(names or [])
            for role_id, names in (config_dict.get("role_permissions") or {}).items()
        },
        department_permissions={
            department: list(tags or [])
            for department, tags in (config_dict.get("department_permissions") or {}).items()
        },
        department_default_roles=dict(config_dict.get("department_default_roles") or {}),
        fallback_role=config_dict.get("fallback_role", DEFAULT_FALLBACK_ROLE),
    )


def load_config(config_path: str) -> Dict[str, Any]:
    """Load a catalog file from YAML.

    Args:
        config_path: Path to the catalog file

    Returns:
        Catalog dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is invalid YAML
        TypeError: If the document root is not a mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Catalog file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Catalog root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in string values."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_catalog_config(config_path: str) -> CatalogConfig:
    """Load and parse a catalog file into a typed CatalogConfig."""
    return parse_catalog_config(load_config(config_path))
