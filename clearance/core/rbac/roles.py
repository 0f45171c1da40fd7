"""Role model for the Clearance RBAC core.

Roles are not a tree. There is no inheritance between them; they are only
compared by ``security_clearance_level`` (ties broken by ``priority``, which
is otherwise cosmetic). The fields with security meaning are
``security_clearance_level``, ``max_security_level`` and the two capability
flags.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import CatalogInvariantViolation, NotFound


@dataclass(frozen=True)
class Role:
    """A system role."""

    id: str
    name: str
    security_clearance_level: int
    max_security_level: int
    priority: int = 0
    display_name: str = ""
    description: str = ""
    is_system_role: bool = False
    can_assign_roles: bool = False
    can_manage_users: bool = False

    def __str__(self) -> str:
        return self.name

    @property
    def rank_key(self) -> tuple:
        """Sort key for the clearance preorder."""
        return (self.security_clearance_level, self.priority)

    def outranks(self, other: "Role") -> bool:
        return self.security_clearance_level > other.security_clearance_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "security_clearance_level": self.security_clearance_level,
            "max_security_level": self.max_security_level,
            "priority": self.priority,
            "is_system_role": self.is_system_role,
            "can_assign_roles": self.can_assign_roles,
            "can_manage_users": self.can_manage_users,
        }


def validate_role(role: Role) -> None:
    """Reject a role definition that cannot enter the catalog."""
    if not role.id or not role.name:
        raise CatalogInvariantViolation(
            f"Role must have an id and a name: {role!r}", subject=role.id or role.name
        )
    if role.max_security_level > role.security_clearance_level:
        raise CatalogInvariantViolation(
            f"Role {role.name} may grant level {role.max_security_level} "
            f"above its own clearance {role.security_clearance_level}",
            subject=role.id,
        )
    if role.security_clearance_level < 0 or role.max_security_level < 0:
        raise CatalogInvariantViolation(
            f"Role {role.name} has a negative security level", subject=role.id
        )


class RoleCatalog:
    """Immutable registry of roles, addressable by id or by name."""

    def __init__(self, roles: Iterable[Role] = ()):
        by_id: Dict[str, Role] = {}
        by_name: Dict[str, Role] = {}
        for role in roles:
            validate_role(role)
            if role.id in by_id:
                raise CatalogInvariantViolation(
                    f"Duplicate role id: {role.id}", subject=role.id
                )
            if role.name in by_name:
                raise CatalogInvariantViolation(
                    f"Duplicate role name: {role.name}", subject=role.id
                )
            by_id[role.id] = role
            by_name[role.name] = role
        self._by_id = by_id
        self._by_name = by_name

    def get(self, key: str) -> Role:
        role = self.find(key)
        if role is None:
            raise NotFound("Role", key)
        return role

    def find(self, key: str) -> Optional[Role]:
        """Look up a role by id, falling back to its name."""
        if key is None:
            return None
        return self._by_id.get(key) or self._by_name.get(key)

    def list(self) -> List[Role]:
        """All roles ordered by priority ascending."""
        return sorted(self._by_id.values(), key=lambda r: (r.priority, r.id))

    def by_clearance(self) -> List[Role]:
        """All roles ordered by the clearance preorder, lowest first."""
        return sorted(self._by_id.values(), key=lambda r: (r.rank_key, r.id))

    def with_role(self, role: Role) -> "RoleCatalog":
        """Return a new catalog with ``role`` added or replaced (matched by id)."""
        entries = dict(self._by_id)
        entries[role.id] = role
        return RoleCatalog(entries.values())

    def without_role(self, role_id: str) -> "RoleCatalog":
        role = self.get(role_id)
        return RoleCatalog(r for r in self._by_id.values() if r.id != role.id)

    def __contains__(self, key: object) -> bool:
        return self.find(key) is not None

    def __iter__(self) -> Iterator[Role]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._by_id)
