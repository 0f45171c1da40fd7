"""Access decision engine.

Evaluates one requested operation against an effective permission set.
A request is allowed only when the named permission is in the set and its
catalogued scope is at least as broad as the scope required by the
principal's relationship to the resource owner. Clearance levels are never
consulted here.

Every path that cannot establish Allow ends in a typed Deny. Unexpected
exceptions are converted to Deny as well, so a bug fails closed.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .decisions import Decision, DenyReason
from .permissions import (
    REQUIRED_SCOPE,
    ROLE_MANAGEMENT_PERMISSION,
    OwnerRelationship,
    Scope,
)
from .resolver import EffectivePermissionSet
from .snapshot import CatalogSnapshot, SnapshotHolder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessRequest:
    """A permission the caller wants to exercise on a particular resource."""

    permission: str
    relationship: OwnerRelationship = OwnerRelationship.SELF
    scope: Optional[Scope] = None   # explicit minimum, if broader than implied

    def __post_init__(self):
        object.__setattr__(self, "relationship", OwnerRelationship(self.relationship))
        if self.scope is not None:
            object.__setattr__(self, "scope", Scope(self.scope))

    @property
    def required_scope(self) -> Scope:
        implied = REQUIRED_SCOPE[self.relationship]
        if self.scope is not None and self.scope.rank > implied.rank:
            return self.scope
        return implied

    def to_dict(self) -> dict:
        return {
            "permission": self.permission,
            "relationship": self.relationship.value,
            "required_scope": self.required_scope.value,
        }


class AccessDecisionEngine:
    """Allow/deny verdicts for concrete requests."""

    def __init__(self, source: Union[SnapshotHolder, CatalogSnapshot]):
        self._source = source

    @property
    def snapshot(self) -> CatalogSnapshot:
        if isinstance(self._source, SnapshotHolder):
            return self._source.current
        return self._source

    def authorize(
        self,
        effective: EffectivePermissionSet,
        request: AccessRequest,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> Decision:
        try:
            decision = self._evaluate(effective, request, snapshot or self.snapshot)
        except Exception:
            logger.exception(
                f"Authorization of {getattr(request, 'permission', request)!r} "
                f"failed; denying"
            )
            return Decision.deny(DenyReason.EVALUATION_ERROR, "evaluation failed")

        if not decision.allowed:
            logger.info(
                f"Denied {request.permission} for role "
                f"{effective.principal.role_id!r}: {decision.reason.value}"
            )
        return decision

    def can_administer_catalog(
        self,
        effective: EffectivePermissionSet,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> Decision:
        """Catalog writes need organization-wide role management."""
        return self.authorize(
            effective,
            AccessRequest(ROLE_MANAGEMENT_PERMISSION, OwnerRelationship.ANY),
            snapshot,
        )

    def _evaluate(
        self,
        effective: EffectivePermissionSet,
        request: AccessRequest,
        snapshot: CatalogSnapshot,
    ) -> Decision:
        permission = snapshot.permissions.find(request.permission)
        if permission is None:
            return Decision.deny(
                DenyReason.UNKNOWN_PERMISSION,
                f"{request.permission} is not in the permission catalog",
            )

        if not permission.is_active:
            return Decision.deny(
                DenyReason.PERMISSION_INACTIVE,
                f"{permission.name} is deactivated",
            )

        if permission.name not in effective:
            if effective.unknown_role:
                return Decision.deny(
                    DenyReason.UNKNOWN_ROLE,
                    f"role {effective.principal.role_id!r} is not catalogued",
                )
            return Decision.deny(
                DenyReason.PERMISSION_NOT_GRANTED,
                f"{permission.name} is not granted",
            )

        required = request.required_scope
        if not permission.scope.covers(required):
            return Decision.deny(
                DenyReason.SCOPE_INSUFFICIENT,
                f"{permission.name} is granted at scope {permission.scope.value}, "
                f"request needs {required.value}",
            )

        return Decision.allow(f"{permission.name} at scope {permission.scope.value}")
