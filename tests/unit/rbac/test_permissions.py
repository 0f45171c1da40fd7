"""Tests for the permission model and catalog."""

import pytest

from clearance.core.rbac.defaults import DEFAULT_PERMISSIONS
from clearance.core.rbac.errors import CatalogInvariantViolation, NotFound
from clearance.core.rbac.permissions import (
    REQUIRED_SCOPE,
    OwnerRelationship,
    Permission,
    PermissionCatalog,
    Scope,
    is_valid_permission_name,
)


def make_permission(name="reports.view", scope=Scope.OWN, **kwargs):
    return Permission(
        name=name,
        module=kwargs.pop("module", name.split(".")[0]),
        action=kwargs.pop("action", "view"),
        scope=scope,
        **kwargs,
    )


class TestScope:
    """Test scope ordering."""

    def test_total_order(self):
        """Test own < team < department < organization."""
        ranks = [s.rank for s in (Scope.OWN, Scope.TEAM, Scope.DEPARTMENT, Scope.ORGANIZATION)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4

    def test_broader_scope_covers_narrower(self):
        """Test a grant covers its own scope and every narrower one."""
        for granted in Scope:
            for required in Scope:
                assert granted.covers(required) == (granted.rank >= required.rank)

    def test_organization_covers_everything(self):
        assert all(Scope.ORGANIZATION.covers(s) for s in Scope)

    def test_own_covers_only_own(self):
        assert Scope.OWN.covers(Scope.OWN)
        assert not Scope.OWN.covers(Scope.TEAM)


class TestOwnerRelationship:
    """Test relationship -> required scope mapping."""

    def test_required_scope_mapping(self):
        assert REQUIRED_SCOPE[OwnerRelationship.SELF] == Scope.OWN
        assert REQUIRED_SCOPE[OwnerRelationship.SAME_TEAM] == Scope.TEAM
        assert REQUIRED_SCOPE[OwnerRelationship.SAME_DEPARTMENT] == Scope.DEPARTMENT
        assert REQUIRED_SCOPE[OwnerRelationship.ANY] == Scope.ORGANIZATION

    def test_parse_from_value(self):
        assert OwnerRelationship("same-team") is OwnerRelationship.SAME_TEAM

    def test_scope_name_shorthand(self):
        """Test scope names are accepted as relationship shorthand."""
        assert OwnerRelationship("department") is OwnerRelationship.SAME_DEPARTMENT
        assert OwnerRelationship("organization") is OwnerRelationship.ANY
        assert OwnerRelationship("own") is OwnerRelationship.SELF

    def test_unknown_relationship_rejected(self):
        with pytest.raises(ValueError):
            OwnerRelationship("neighbour")


class TestPermissionModel:
    """Test permission definitions."""

    def test_permission_string_is_name(self):
        assert str(make_permission("hr.payroll.view")) == "hr.payroll.view"

    def test_is_valid_permission_name(self):
        assert is_valid_permission_name("hr.view")
        assert is_valid_permission_name("hr.employees.view_team")
        assert not is_valid_permission_name("hr")
        assert not is_valid_permission_name("HR.View")
        assert not is_valid_permission_name("")
        assert not is_valid_permission_name("hr:view")

    def test_deactivate_and_reactivate(self):
        """Test activation transitions return new permissions."""
        perm = make_permission()
        inactive = perm.deactivated()
        assert perm.is_active
        assert not inactive.is_active
        assert inactive.reactivated().is_active

    def test_to_dict(self):
        data = make_permission("hr.view", scope=Scope.TEAM, security_level=2).to_dict()
        assert data["name"] == "hr.view"
        assert data["module"] == "hr"
        assert data["scope"] == "team"
        assert data["security_level"] == 2
        assert data["is_active"] is True


class TestPermissionCatalog:
    """Test PermissionCatalog class."""

    def test_get_and_find(self):
        catalog = PermissionCatalog([make_permission("hr.view")])
        assert catalog.get("hr.view").module == "hr"
        assert catalog.find("hr.edit") is None

    def test_get_unknown_raises_not_found(self):
        """Test NotFound is also a KeyError."""
        catalog = PermissionCatalog()
        with pytest.raises(NotFound):
            catalog.get("hr.view")
        with pytest.raises(KeyError):
            catalog.get("hr.view")

    def test_duplicate_name_rejected(self):
        with pytest.raises(CatalogInvariantViolation):
            PermissionCatalog([make_permission("hr.view"), make_permission("hr.view")])

    def test_invalid_name_rejected(self):
        with pytest.raises(CatalogInvariantViolation):
            PermissionCatalog([make_permission("not-a-name")])

    def test_invalid_scope_rejected(self):
        with pytest.raises(CatalogInvariantViolation):
            PermissionCatalog([make_permission("hr.view", scope="everywhere")])

    def test_list_ordered_by_module_then_name(self):
        catalog = PermissionCatalog([
            make_permission("programs.view"),
            make_permission("hr.view"),
            make_permission("hr.edit", action="edit"),
        ])
        assert [p.name for p in catalog.list()] == ["hr.edit", "hr.view", "programs.view"]

    def test_is_active(self):
        catalog = PermissionCatalog([
            make_permission("hr.view"),
            make_permission("hr.payroll.view", is_active=False),
        ])
        assert catalog.is_active("hr.view")
        assert not catalog.is_active("hr.payroll.view")
        assert not catalog.is_active("hr.unknown")

    def test_with_permission_replaces(self):
        """Test with_permission returns a new catalog and leaves the old one."""
        catalog = PermissionCatalog([make_permission("hr.view")])
        updated = catalog.with_permission(make_permission("hr.view").deactivated())
        assert catalog.is_active("hr.view")
        assert not updated.is_active("hr.view")
        assert len(updated) == 1

    def test_modules(self):
        catalog = PermissionCatalog(DEFAULT_PERMISSIONS)
        assert catalog.modules() == [
            "callcenter", "dashboard", "documents", "hr", "profile", "programs", "system",
        ]
        assert {p.name for p in catalog.for_module("profile")} == {"profile.view", "profile.edit"}


class TestDefaultPermissions:
    """Test the built-in permission catalog."""

    def test_catalog_loads(self):
        assert len(PermissionCatalog(DEFAULT_PERMISSIONS)) == 24

    def test_topsecret_is_narrowest_scope(self):
        catalog = PermissionCatalog(DEFAULT_PERMISSIONS)
        topsecret = catalog.get("documents.view_topsecret")
        assert topsecret.scope == Scope.OWN
        assert topsecret.security_level == 4

    def test_role_management_is_organization_wide(self):
        catalog = PermissionCatalog(DEFAULT_PERMISSIONS)
        assert catalog.get("system.roles").scope == Scope.ORGANIZATION
