"""Permission model for the Clearance RBAC core.

A permission is identified by a dotted name (``documents.view_secret``) and
describes the functional area it belongs to, what it lets the holder do, and
how broad the data it covers is.

Scopes form a total order by breadth of access:

    own < team < department < organization

A grant at a given scope satisfies any request needing that scope or a
narrower one. ``security_level`` is descriptive (display and audit); it is
never an enforcement gate on its own.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

from .errors import CatalogInvariantViolation, NotFound


class Scope(str, Enum):
    """Breadth of data a permission covers."""

    OWN = "own"
    TEAM = "team"
    DEPARTMENT = "department"
    ORGANIZATION = "organization"

    @property
    def rank(self) -> int:
        return _SCOPE_ORDER.index(self)

    def covers(self, required: "Scope") -> bool:
        """True if a grant at this scope satisfies a request needing ``required``."""
        return self.rank >= required.rank


_SCOPE_ORDER = [Scope.OWN, Scope.TEAM, Scope.DEPARTMENT, Scope.ORGANIZATION]


class OwnerRelationship(str, Enum):
    """Relationship between the requesting principal and the resource owner."""

    SELF = "self"
    SAME_TEAM = "same-team"
    SAME_DEPARTMENT = "same-department"
    ANY = "any"

    @classmethod
    def _missing_(cls, value):
        # Scope names are accepted as shorthand ("department" for same-department)
        for relationship, scope in REQUIRED_SCOPE.items():
            if value == scope.value:
                return relationship
        return None


# Scope a grant must have to reach a resource with the given relationship
REQUIRED_SCOPE: Dict[OwnerRelationship, Scope] = {
    OwnerRelationship.SELF: Scope.OWN,
    OwnerRelationship.SAME_TEAM: Scope.TEAM,
    OwnerRelationship.SAME_DEPARTMENT: Scope.DEPARTMENT,
    OwnerRelationship.ANY: Scope.ORGANIZATION,
}


# Categories and actions are open-ended; these are the values the seed uses.
KNOWN_CATEGORIES: FrozenSet[str] = frozenset(
    ["access", "crud", "admin", "finance", "analytics"]
)
KNOWN_ACTIONS: FrozenSet[str] = frozenset(["view", "create", "edit", "manage"])

# Capability needed to write to the catalogs themselves
ROLE_MANAGEMENT_PERMISSION = "system.roles"

PERMISSION_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z0-9_]+)+$")


@dataclass(frozen=True)
class Permission:
    """A single entry of the permission catalog."""

    name: str
    module: str
    action: str
    scope: Scope
    category: str = "access"
    security_level: int = 1
    display_name: str = ""
    description: str = ""
    requires_approval: bool = False
    is_active: bool = True

    def __str__(self) -> str:
        return self.name

    def deactivated(self) -> "Permission":
        return replace(self, is_active=False)

    def reactivated(self) -> "Permission":
        return replace(self, is_active=True)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "module": self.module,
            "category": self.category,
            "action": self.action,
            "scope": self.scope.value,
            "security_level": self.security_level,
            "requires_approval": self.requires_approval,
            "is_active": self.is_active,
        }


def is_valid_permission_name(name: str) -> bool:
    """Check that a permission name is a lowercase dotted path."""
    return bool(PERMISSION_NAME_PATTERN.match(name or ""))


def validate_permission(permission: Permission) -> None:
    """Reject a permission definition that cannot enter the catalog."""
    if not is_valid_permission_name(permission.name):
        raise CatalogInvariantViolation(
            f"Invalid permission name: {permission.name!r}",
            subject=permission.name,
        )
    if not isinstance(permission.scope, Scope):
        raise CatalogInvariantViolation(
            f"Permission {permission.name} has invalid scope {permission.scope!r}",
            subject=permission.name,
        )
    if not permission.module:
        raise CatalogInvariantViolation(
            f"Permission {permission.name} has no module", subject=permission.name
        )
    if permission.security_level < 0:
        raise CatalogInvariantViolation(
            f"Permission {permission.name} has negative security level",
            subject=permission.name,
        )


class PermissionCatalog:
    """Immutable registry of permission definitions keyed by name."""

    def __init__(self, permissions: Iterable[Permission] = ()):
        by_name: Dict[str, Permission] = {}
        for permission in permissions:
            validate_permission(permission)
            if permission.name in by_name:
                raise CatalogInvariantViolation(
                    f"Duplicate permission name: {permission.name}",
                    subject=permission.name,
                )
            by_name[permission.name] = permission
        self._by_name = by_name

    def get(self, name: str) -> Permission:
        try:
            return self._by_name[name]
        except KeyError:
            raise NotFound("Permission", name) from None

    def find(self, name: str) -> Optional[Permission]:
        return self._by_name.get(name)

    def list(self) -> List[Permission]:
        """All permissions ordered by module, then name."""
        return sorted(self._by_name.values(), key=lambda p: (p.module, p.name))

    def names(self) -> FrozenSet[str]:
        return frozenset(self._by_name)

    def is_active(self, name: str) -> bool:
        permission = self._by_name.get(name)
        return permission is not None and permission.is_active

    def for_module(self, module: str) -> List[Permission]:
        return [p for p in self.list() if p.module == module]

    def modules(self) -> List[str]:
        return sorted({p.module for p in self._by_name.values()})

    def with_permission(self, permission: Permission) -> "PermissionCatalog":
        """Return a new catalog with ``permission`` added or replaced."""
        entries = dict(self._by_name)
        entries[permission.name] = permission
        return PermissionCatalog(entries.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Permission]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._by_name)
