"""Pytest configuration and shared fixtures."""

import logging
from datetime import datetime, timezone

import pytest

from clearance.core.rbac.admin import CatalogAdministrator
from clearance.core.rbac.defaults import build_default_snapshot, default_department_roles
from clearance.core.rbac.resolver import Principal
from clearance.core.rbac.service import AccessControlService
from clearance.core.rbac.snapshot import SnapshotHolder
from clearance.db.base import Base
from clearance.db.session import make_engine, make_session_factory
from clearance.db.store import InMemoryCatalogStore, seed_catalog

FIXED_TIME = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo logging configuration done by a test."""
    logger = logging.getLogger("clearance")
    level = logger.level
    handlers = list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


@pytest.fixture
def snapshot():
    """The built-in default catalog."""
    return build_default_snapshot()


@pytest.fixture
def holder(snapshot):
    return SnapshotHolder(snapshot)


@pytest.fixture
def service(holder):
    return AccessControlService(holder, department_defaults=default_department_roles())


@pytest.fixture
def memory_store(snapshot):
    store = InMemoryCatalogStore()
    seed_catalog(store, snapshot)
    return store


@pytest.fixture
def administrator(holder, memory_store):
    return CatalogAdministrator(holder, memory_store)


@pytest.fixture
def sysadmin():
    return Principal("system_administrator", "EXECUTIVE_LEADERSHIP", subject_id="u-root")


@pytest.fixture
def admin_principal():
    return Principal("administrator", "HUMAN_RESOURCES", subject_id="u-admin")


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME


@pytest.fixture
def db_session():
    """Session on a fresh in-memory SQLite database."""
    engine = make_engine("sqlite://", echo=False)
    Base.metadata.create_all(engine)
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
