"""Tests for catalog file loading."""

import pytest
import yaml

from clearance.common.config import (
    load_catalog_config,
    load_config,
    parse_catalog_config,
    parse_permission,
    parse_role,
)
from clearance.core.rbac.engine import AccessDecisionEngine, AccessRequest
from clearance.core.rbac.errors import CatalogInvariantViolation
from clearance.core.rbac.permissions import Scope
from clearance.core.rbac.resolver import PermissionResolver, Principal

CATALOG = {
    "roles": [
        {
            "id": "role_viewer",
            "name": "viewer",
            "security_clearance_level": 1,
            "priority": 1,
        },
        {
            "id": "role_manager",
            "name": "manager",
            "security_clearance_level": 2,
            "max_security_level": 2,
            "priority": 2,
            "can_assign_roles": True,
        },
    ],
    "permissions": [
        {"name": "dashboard.view", "action": "view"},
        {"name": "reports.view", "action": "view", "scope": "department", "security_level": 2},
    ],
    "role_permissions": {
        "role_viewer": ["dashboard.view"],
        "role_manager": ["dashboard.view", "reports.view"],
    },
    "department_permissions": {"FINANCE": ["financial_reports"]},
    "department_default_roles": {"FINANCE": "manager"},
    "fallback_role": "viewer",
}


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(yaml.safe_dump(CATALOG))
    return path


class TestParseEntries:
    """Tests for role and permission entry parsing."""

    def test_parse_role_defaults(self):
        role = parse_role({"id": "role_x", "name": "x", "security_clearance_level": 3})
        assert role.max_security_level == 3
        assert role.priority == 0
        assert not role.can_assign_roles

    def test_parse_permission_defaults(self):
        permission = parse_permission({"name": "hr.payroll.view"})
        assert permission.module == "hr"
        assert permission.scope is Scope.OWN
        assert permission.is_active

    def test_parse_permission_invalid_scope(self):
        with pytest.raises(CatalogInvariantViolation) as exc:
            parse_permission({"name": "hr.view", "scope": "galaxy"})
        assert exc.value.subject == "hr.view"

    def test_string_flags_parsed_strictly(self):
        """Test quoted or expanded "false" values stay false."""
        role = parse_role({
            "id": "role_x",
            "name": "x",
            "can_assign_roles": "false",
            "can_manage_users": "No",
            "is_system_role": "TRUE",
        })
        assert role.can_assign_roles is False
        assert role.can_manage_users is False
        assert role.is_system_role is True

        permission = parse_permission({"name": "hr.view", "is_active": "false"})
        assert permission.is_active is False
        assert parse_permission({"name": "hr.view", "requires_approval": 1}).requires_approval

    def test_env_expanded_flag(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CAN_ASSIGN", "false")
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "roles:\n"
            "  - id: role_x\n"
            "    name: x\n"
            "    can_assign_roles: ${CAN_ASSIGN}\n"
        )
        assert load_catalog_config(str(path)).roles[0].can_assign_roles is False

    @pytest.mark.parametrize("value", ["maybe", "", 2, [True]])
    def test_unrecognized_flag_rejected(self, value):
        with pytest.raises(CatalogInvariantViolation) as exc:
            parse_role({"id": "role_x", "name": "x", "can_assign_roles": value})
        assert exc.value.subject == "role_x"
        with pytest.raises(CatalogInvariantViolation):
            parse_permission({"name": "hr.view", "is_active": value})

    def test_parse_empty_catalog(self):
        config = parse_catalog_config({})
        assert config.roles == []
        assert config.fallback_role == "basic_user_1"


class TestLoadCatalog:
    """Tests for loading catalog files from disk."""

    def test_load_catalog(self, catalog_file):
        config = load_catalog_config(str(catalog_file))
        snapshot = config.to_snapshot()

        assert [r.name for r in snapshot.roles] == ["viewer", "manager"]
        assert snapshot.permissions.get("reports.view").scope is Scope.DEPARTMENT
        assert snapshot.grants.permissions_for("role_manager") == {"dashboard.view", "reports.view"}
        assert snapshot.departments.tags_for("FINANCE") == {"financial_reports"}
        assert config.department_defaults().suggest("FINANCE") == "manager"
        assert config.department_defaults().suggest("HR") == "viewer"

    def test_loaded_catalog_authorizes(self, catalog_file):
        snapshot = load_catalog_config(str(catalog_file)).to_snapshot()
        effective = PermissionResolver(snapshot).resolve(Principal("manager", "FINANCE"))
        engine = AccessDecisionEngine(snapshot)

        assert engine.authorize(effective, AccessRequest("reports.view", "same-department")).allowed
        assert not engine.authorize(effective, AccessRequest("reports.view", "any")).allowed
        assert effective.has_tag("financial_reports")

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CATALOG_FALLBACK", "viewer")
        path = tmp_path / "catalog.yaml"
        path.write_text("fallback_role: ${CATALOG_FALLBACK}\n")
        assert load_config(str(path))["fallback_role"] == "viewer"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- roles\n- permissions\n")
        with pytest.raises(TypeError):
            load_config(str(path))

    def test_grant_to_unknown_permission(self, tmp_path):
        broken = dict(CATALOG, role_permissions={"role_viewer": ["missing.view"]})
        path = tmp_path / "broken.yaml"
        path.write_text(yaml.safe_dump(broken))
        with pytest.raises(CatalogInvariantViolation):
            load_catalog_config(str(path)).to_snapshot()

    def test_grant_by_role_name_rejected(self, tmp_path):
        """Test grants must name the role id, not its name."""
        broken = dict(CATALOG, role_permissions={"viewer": ["dashboard.view"]})
        path = tmp_path / "by_name.yaml"
        path.write_text(yaml.safe_dump(broken))
        with pytest.raises(CatalogInvariantViolation):
            load_catalog_config(str(path)).to_snapshot()
