"""Effective permission resolution.

The effective permission set of a principal is the union of the permissions
granted to its role and the capability tags of its department, with inactive
catalog permissions removed. Scope is not considered here; narrowing happens
in the access engine against a concrete request.

An unknown role never falls back to a default role. The result is flagged
``UNKNOWN_ROLE`` and holds the department tags only.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Union

from .snapshot import CatalogSnapshot, SnapshotHolder

logger = logging.getLogger(__name__)

UNASSIGNED_DEPARTMENT = "Unassigned"


class ResolutionError(str, Enum):
    """Why a resolution is incomplete."""

    UNKNOWN_ROLE = "unknown_role"


@dataclass(frozen=True)
class Principal:
    """Who is asking: a role and a department, supplied per request."""

    role_id: str
    department_key: str = UNASSIGNED_DEPARTMENT
    subject_id: Optional[str] = None   # informational, for audit only

    def to_dict(self) -> dict:
        return {
            "role_id": self.role_id,
            "department_key": self.department_key,
            "subject_id": self.subject_id,
        }


@dataclass(frozen=True)
class EffectivePermissionSet:
    """Request-scoped, deduplicated set of permission names and tags."""

    principal: Principal
    role_permissions: FrozenSet[str] = frozenset()
    department_tags: FrozenSet[str] = frozenset()
    role_id: Optional[str] = None
    error: Optional[ResolutionError] = None
    snapshot_version: int = 0
    permissions: FrozenSet[str] = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "permissions", self.role_permissions | self.department_tags
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def unknown_role(self) -> bool:
        return self.error is ResolutionError.UNKNOWN_ROLE

    def has_tag(self, tag: str) -> bool:
        """Coarse capability check for department tags and permission names alike."""
        return tag in self.permissions

    def to_list(self) -> List[str]:
        return sorted(self.permissions)

    def to_dict(self) -> dict:
        return {
            "principal": self.principal.to_dict(),
            "role_id": self.role_id,
            "permissions": self.to_list(),
            "error": self.error.value if self.error else None,
            "snapshot_version": self.snapshot_version,
        }

    def __contains__(self, name: object) -> bool:
        return name in self.permissions

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self.permissions)


class PermissionResolver:
    """Computes effective permission sets from the published snapshot."""

    def __init__(
        self,
        source: Union[SnapshotHolder, CatalogSnapshot],
        *,
        cache_enabled: bool = True,
    ):
        """
        Args:
            source: Holder to read the current snapshot from, or a fixed snapshot
            cache_enabled: Memoize results per (role, department) on the snapshot
        """
        self._source = source
        self.cache_enabled = cache_enabled

    @property
    def snapshot(self) -> CatalogSnapshot:
        if isinstance(self._source, SnapshotHolder):
            return self._source.current
        return self._source

    def resolve(
        self,
        principal: Principal,
        snapshot: Optional[CatalogSnapshot] = None,
    ) -> EffectivePermissionSet:
        """Resolve a principal against ``snapshot`` (default: the current one)."""
        snapshot = snapshot or self.snapshot
        key = self._cache_key(principal, snapshot) if self.cache_enabled else None

        if key is not None:
            cached = snapshot.resolution_cache.get(key)
            if cached is not None:
                if cached.principal == principal:
                    return cached
                return EffectivePermissionSet(
                    principal=principal,
                    role_permissions=cached.role_permissions,
                    department_tags=cached.department_tags,
                    role_id=cached.role_id,
                    error=cached.error,
                    snapshot_version=cached.snapshot_version,
                )

        result = self._compute(principal, snapshot)
        if key is not None:
            snapshot.resolution_cache[key] = result
        return result

    @staticmethod
    def _cache_key(principal: Principal, snapshot: CatalogSnapshot) -> Optional[tuple]:
        """Cache slot for a principal, or None when the result is not cached.

        Only catalogued roles are cached, and every department without tags
        shares one slot, so the cache is bounded by the catalog size.
        """
        role = snapshot.roles.find(principal.role_id)
        if role is None:
            return None
        department = principal.department_key
        if department not in snapshot.departments:
            department = None
        return (role.id, department)

    def _compute(
        self, principal: Principal, snapshot: CatalogSnapshot
    ) -> EffectivePermissionSet:
        permissions = snapshot.permissions
        department_tags = frozenset(
            tag
            for tag in snapshot.departments.tags_for(principal.department_key)
            # Tags naming a catalog permission follow its active flag
            if tag not in permissions or permissions.is_active(tag)
        )

        role = snapshot.roles.find(principal.role_id)
        if role is None:
            logger.warning(
                f"Unknown role {principal.role_id!r} for department "
                f"{principal.department_key!r}; resolving department tags only"
            )
            return EffectivePermissionSet(
                principal=principal,
                department_tags=department_tags,
                error=ResolutionError.UNKNOWN_ROLE,
                snapshot_version=snapshot.version,
            )

        role_permissions = frozenset(
            name
            for name in snapshot.grants.permissions_for(role.id)
            if permissions.is_active(name)
        )
        return EffectivePermissionSet(
            principal=principal,
            role_permissions=role_permissions,
            department_tags=department_tags,
            role_id=role.id,
            snapshot_version=snapshot.version,
        )
