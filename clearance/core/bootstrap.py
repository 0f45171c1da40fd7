"""Application wiring: build the published catalog and the access service.

The initial catalog comes from the YAML file named by ``catalog_file`` or,
when none is configured, from the built-in defaults. With a store, that seed
is written to it (if ``seed_on_startup``) and the snapshot is then loaded
back, so stored changes from earlier runs are kept. The package logger is
configured from the same settings.
"""

import logging
from typing import Optional, Tuple

from clearance.common.config import load_catalog_config
from clearance.common.logger import setup_from_settings
from clearance.core.config import Settings, get_settings
from clearance.core.rbac.admin import CatalogAdministrator
from clearance.core.rbac.assignment import DepartmentRoleDefaults
from clearance.core.rbac.defaults import DEPARTMENT_DEFAULT_ROLES, build_default_snapshot
from clearance.core.rbac.service import AccessControlService
from clearance.core.rbac.snapshot import CatalogSnapshot, SnapshotHolder
from clearance.db.store import CatalogStore, load_snapshot, seed_catalog

logger = logging.getLogger(__name__)


def load_seed(settings: Settings) -> Tuple[CatalogSnapshot, DepartmentRoleDefaults]:
    """Seed snapshot and department defaults from settings."""
    if settings.catalog_file:
        logger.info(f"Loading catalog from {settings.catalog_file}")
        catalog = load_catalog_config(settings.catalog_file)
        return catalog.to_snapshot(), catalog.department_defaults()

    defaults = DepartmentRoleDefaults(DEPARTMENT_DEFAULT_ROLES, settings.default_role)
    return build_default_snapshot(), defaults


def create_access_control(
    settings: Optional[Settings] = None,
    store: Optional[CatalogStore] = None,
) -> Tuple[AccessControlService, CatalogAdministrator]:
    """Build the service and administrator over one snapshot holder."""
    settings = settings or get_settings()
    setup_from_settings(settings)
    snapshot, department_defaults = load_seed(settings)

    if store is not None:
        if settings.seed_on_startup:
            seed_catalog(store, snapshot)
        snapshot = load_snapshot(store)

    holder = SnapshotHolder(snapshot)
    service = AccessControlService(
        holder,
        department_defaults=department_defaults,
        cache_enabled=settings.resolve_cache_enabled,
        unassigned_department=settings.unassigned_department,
    )
    administrator = CatalogAdministrator(holder, store, guard=service.guard)
    return service, administrator
