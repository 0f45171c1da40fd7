"""Role grants and department capability tables.

Both structures are immutable; every ``with_*``/``without_*`` call returns a
new instance so they can live inside a published snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import CatalogInvariantViolation
from .permissions import PermissionCatalog
from .roles import RoleCatalog


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RoleGrant:
    """Association of a permission with a role."""

    role_id: str
    permission: str
    granted_by: str = "system"
    granted_at: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.role_id, self.permission)

    def to_dict(self) -> dict:
        return {
            "role_id": self.role_id,
            "permission": self.permission,
            "granted_by": self.granted_by,
            "granted_at": self.granted_at.isoformat() if self.granted_at else None,
        }


class RolePermissionGrants:
    """Mapping role id -> granted permission names, one grant per pair."""

    def __init__(self, grants: Iterable[RoleGrant] = ()):
        by_role: Dict[str, Dict[str, RoleGrant]] = {}
        for grant in grants:
            role_grants = by_role.setdefault(grant.role_id, {})
            # First grant wins; a repeated grant is a no-op
            role_grants.setdefault(grant.permission, grant)
        self._by_role = by_role

    def permissions_for(self, role_id: str) -> FrozenSet[str]:
        return frozenset(self._by_role.get(role_id, {}))

    def grants_for(self, role_id: str) -> List[RoleGrant]:
        grants = self._by_role.get(role_id, {})
        return [grants[name] for name in sorted(grants)]

    def get(self, role_id: str, permission: str) -> Optional[RoleGrant]:
        return self._by_role.get(role_id, {}).get(permission)

    def has_grant(self, role_id: str, permission: str) -> bool:
        return self.get(role_id, permission) is not None

    def with_grant(self, grant: RoleGrant) -> "RolePermissionGrants":
        """Upsert a grant. Re-granting an existing pair keeps the original record."""
        if self.has_grant(grant.role_id, grant.permission):
            return self
        return RolePermissionGrants([*self, grant])

    def without_grant(self, role_id: str, permission: str) -> "RolePermissionGrants":
        return RolePermissionGrants(
            g for g in self if g.key != (role_id, permission)
        )

    def without_role(self, role_id: str) -> "RolePermissionGrants":
        return RolePermissionGrants(g for g in self if g.role_id != role_id)

    def validate(self, roles: RoleCatalog, permissions: PermissionCatalog) -> None:
        """Check every grant references a catalogued role and permission."""
        for grant in self:
            role = roles.find(grant.role_id)
            if role is None or role.id != grant.role_id:
                raise CatalogInvariantViolation(
                    f"Grant references unknown role id: {grant.role_id}",
                    subject=grant.role_id,
                )
            if grant.permission not in permissions:
                raise CatalogInvariantViolation(
                    f"Grant to {grant.role_id} references unknown permission: "
                    f"{grant.permission}",
                    subject=grant.permission,
                )

    def __iter__(self) -> Iterator[RoleGrant]:
        for role_id in sorted(self._by_role):
            yield from self.grants_for(role_id)

    def __len__(self) -> int:
        return sum(len(g) for g in self._by_role.values())


class DepartmentPermissionTable:
    """Mapping department key -> supplemental capability tags.

    Tags may name catalog permissions or be opaque capability strings. They
    are additive only and never remove a role-derived permission.
    """

    def __init__(self, entries: Optional[Mapping[str, Iterable[str]]] = None):
        table: Dict[str, FrozenSet[str]] = {}
        for department, tags in (entries or {}).items():
            if not department:
                raise CatalogInvariantViolation("Department key must not be empty")
            tags = frozenset(tags)
            for tag in tags:
                if not isinstance(tag, str) or not tag.strip():
                    raise CatalogInvariantViolation(
                        f"Department {department} has an empty capability tag",
                        subject=department,
                    )
            table[department] = tags
        self._table = table

    def tags_for(self, department_key: Optional[str]) -> FrozenSet[str]:
        """Tags for a department; an unknown department has none."""
        return self._table.get(department_key, frozenset())

    def departments(self) -> List[str]:
        return sorted(self._table)

    def with_tag(self, department_key: str, tag: str) -> "DepartmentPermissionTable":
        entries = dict(self._table)
        entries[department_key] = entries.get(department_key, frozenset()) | {tag}
        return DepartmentPermissionTable(entries)

    def without_tag(self, department_key: str, tag: str) -> "DepartmentPermissionTable":
        entries = dict(self._table)
        remaining = entries.get(department_key, frozenset()) - {tag}
        if remaining:
            entries[department_key] = remaining
        else:
            entries.pop(department_key, None)
        return DepartmentPermissionTable(entries)

    def items(self) -> List[Tuple[str, str]]:
        """Flattened (department, tag) pairs in a stable order."""
        return [
            (department, tag)
            for department in sorted(self._table)
            for tag in sorted(self._table[department])
        ]

    def to_dict(self) -> Dict[str, List[str]]:
        return {dept: sorted(tags) for dept, tags in sorted(self._table.items())}

    def __contains__(self, department_key: object) -> bool:
        return department_key in self._table

    def __len__(self) -> int:
        return len(self._table)
