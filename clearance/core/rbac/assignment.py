"""Role assignment guard.

Decides whether an actor may grant a role (or a role's permissions) to
someone else. The rules enforce non-escalation: an actor can never grant a
role whose clearance exceeds the actor's own ``max_security_level``, and
since that ceiling never exceeds the actor's clearance, delegation cannot
produce a peer or a superior.

Self-assignment is checked exactly like any other assignment.
"""

from typing import Dict, List, Mapping, Optional

from .decisions import Decision, DenyReason
from .roles import Role, RoleCatalog

DEFAULT_FALLBACK_ROLE = "basic_user_1"


class RoleAssignmentGuard:
    """Evaluates actor -> target role assignments."""

    def can_assign(self, actor_role: Role, target_role: Role) -> Decision:
        if not actor_role.can_assign_roles:
            return Decision.deny(
                DenyReason.ACTOR_CANNOT_ASSIGN_ROLES,
                f"{actor_role.name} cannot assign roles",
            )

        if target_role.security_clearance_level > actor_role.max_security_level:
            return Decision.deny(
                DenyReason.EXCEEDS_GRANTABLE_LEVEL,
                f"{target_role.name} has clearance "
                f"{target_role.security_clearance_level}, {actor_role.name} may "
                f"grant up to {actor_role.max_security_level}",
            )

        return Decision.allow(f"{actor_role.name} may assign {target_role.name}")

    def assignable_roles(self, actor_role: Role, roles: RoleCatalog) -> List[Role]:
        """Roles the actor may assign, in priority order."""
        return [r for r in roles.list() if self.can_assign(actor_role, r)]


class DepartmentRoleDefaults:
    """Suggested starting role for members of each department."""

    def __init__(
        self,
        defaults: Optional[Mapping[str, str]] = None,
        fallback_role: str = DEFAULT_FALLBACK_ROLE,
    ):
        self._defaults: Dict[str, str] = dict(defaults or {})
        self.fallback_role = fallback_role

    def suggest(self, department_key: Optional[str]) -> str:
        """Role key suggested for a department, or the fallback role."""
        return self._defaults.get(department_key, self.fallback_role)

    def suggest_role(self, department_key: Optional[str], roles: RoleCatalog) -> Role:
        return roles.get(self.suggest(department_key))

    def to_dict(self) -> Dict[str, str]:
        return dict(sorted(self._defaults.items()))
