"""Immutable catalog snapshots and their atomic publication.

Readers take ``holder.current`` once per request and work against that
snapshot only. Writers serialize on a lock, build a complete replacement,
validate it, and swap the reference. A reader therefore sees either the old
catalog or the new one, never a mix.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional

from .grants import DepartmentPermissionTable, RolePermissionGrants
from .permissions import PermissionCatalog
from .roles import RoleCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything the resolver and engine read, frozen together."""

    roles: RoleCatalog = field(default_factory=RoleCatalog)
    permissions: PermissionCatalog = field(default_factory=PermissionCatalog)
    grants: RolePermissionGrants = field(default_factory=RolePermissionGrants)
    departments: DepartmentPermissionTable = field(
        default_factory=DepartmentPermissionTable
    )
    version: int = 0
    # Resolution results for this snapshot only; dropped with it on swap.
    resolution_cache: Dict[tuple, object] = field(
        default_factory=dict, compare=False, repr=False
    )

    def validate(self) -> None:
        """Check cross-catalog references. Per-entry checks ran on construction."""
        self.grants.validate(self.roles, self.permissions)

    def evolve(self, **changes) -> "CatalogSnapshot":
        """Return a validated successor with the given parts replaced."""
        successor = replace(
            self,
            version=self.version + 1,
            resolution_cache={},
            **changes,
        )
        successor.validate()
        return successor

    def summary(self) -> dict:
        return {
            "version": self.version,
            "roles": len(self.roles),
            "permissions": len(self.permissions),
            "grants": len(self.grants),
            "departments": len(self.departments),
        }


def build_snapshot(
    roles: RoleCatalog,
    permissions: PermissionCatalog,
    grants: Optional[RolePermissionGrants] = None,
    departments: Optional[DepartmentPermissionTable] = None,
    *,
    version: int = 1,
) -> CatalogSnapshot:
    """Assemble and validate a snapshot from its parts."""
    snapshot = CatalogSnapshot(
        roles=roles,
        permissions=permissions,
        grants=grants or RolePermissionGrants(),
        departments=departments or DepartmentPermissionTable(),
        version=version,
    )
    snapshot.validate()
    return snapshot


class SnapshotHolder:
    """Publishes the current snapshot to concurrent readers."""

    def __init__(self, snapshot: Optional[CatalogSnapshot] = None):
        self._snapshot = snapshot or CatalogSnapshot()
        self._write_lock = threading.Lock()

    @property
    def current(self) -> CatalogSnapshot:
        return self._snapshot

    def swap(self, snapshot: CatalogSnapshot) -> CatalogSnapshot:
        """Validate and publish a complete replacement snapshot."""
        snapshot.validate()
        with self._write_lock:
            self._publish(snapshot)
        return snapshot

    def update(
        self, change: Callable[[CatalogSnapshot], CatalogSnapshot]
    ) -> CatalogSnapshot:
        """Apply ``change`` to the current snapshot and publish the result.

        ``change`` runs under the writer lock, so concurrent writers cannot
        lose each other's updates. If it raises, nothing is published.
        """
        with self._write_lock:
            successor = change(self._snapshot)
            if successor is self._snapshot:
                return successor
            successor.validate()
            self._publish(successor)
        return successor

    def _publish(self, snapshot: CatalogSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        logger.info(
            f"Published catalog snapshot v{snapshot.version} "
            f"(previous v{previous.version}): {snapshot.summary()}"
        )
