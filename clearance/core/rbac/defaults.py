"""Default catalog for the organization portal.

Defines the six system roles, the permission catalog for the portal modules
(call centre, HR, programs, documents, dashboard, profile, system), the
role -> permission mappings, and the department capability tags:

1. Basic User 1 - Entry level, view-only essentials
2. Basic User 2 - Basic user with call creation, HR and programs viewing
3. Advance User 1 - Departmental access
4. Advance User 2 - Cross-departmental access, may assign level 1-2 roles
5. Administrator - High-level access, may assign up to level 3
6. System Administrator - Full access including role management
"""

from typing import Dict, List

from .assignment import DepartmentRoleDefaults
from .grants import DepartmentPermissionTable, RoleGrant, RolePermissionGrants
from .permissions import Permission, PermissionCatalog, Scope
from .roles import Role, RoleCatalog
from .snapshot import CatalogSnapshot, build_snapshot


def _permission(
    name: str,
    display_name: str,
    description: str,
    category: str,
    action: str,
    scope: Scope,
    security_level: int,
    *,
    requires_approval: bool = False,
) -> Permission:
    return Permission(
        name=name,
        module=name.split(".")[0],
        action=action,
        scope=scope,
        category=category,
        security_level=security_level,
        display_name=display_name,
        description=description,
        requires_approval=requires_approval,
    )


DEFAULT_PERMISSIONS: List[Permission] = [
    # Call Centre
    _permission("callcenter.view", "View Call Centre",
                "Access to view call centre data and dashboard",
                "access", "view", Scope.OWN, 1),
    _permission("callcenter.create", "Create Call Records",
                "Create new call records and case entries",
                "crud", "create", Scope.OWN, 1),
    _permission("callcenter.edit_own", "Edit Own Calls",
                "Edit own call records and case updates",
                "crud", "edit", Scope.OWN, 1),
    _permission("callcenter.edit_all", "Edit All Calls",
                "Edit all call records within department",
                "crud", "edit", Scope.DEPARTMENT, 2),
    _permission("callcenter.manage", "Manage Call Centre",
                "Full call centre management including agent oversight",
                "admin", "manage", Scope.ORGANIZATION, 3),

    # HR
    _permission("hr.view", "View HR Data",
                "Access to view basic HR information",
                "access", "view", Scope.OWN, 1),
    _permission("hr.employees.view_team", "View Team HR Data",
                "View HR data for team members",
                "access", "view", Scope.TEAM, 2),
    _permission("hr.employees.create", "Create Employees",
                "Add new employee records",
                "crud", "create", Scope.DEPARTMENT, 2, requires_approval=True),
    _permission("hr.payroll.view", "View Payroll",
                "Access to payroll information",
                "finance", "view", Scope.DEPARTMENT, 3),

    # Programs
    _permission("programs.view", "View Programs",
                "Access to view program and project data",
                "access", "view", Scope.OWN, 1),
    _permission("programs.create", "Create Programs",
                "Create new programs and projects",
                "crud", "create", Scope.TEAM, 2, requires_approval=True),
    _permission("programs.manage", "Manage Programs",
                "Full program management including budget oversight",
                "admin", "manage", Scope.ORGANIZATION, 3),

    # Document repository; top secret access is granted individually
    _permission("documents.view_public", "View Public Documents",
                "Access to public documents and resources",
                "access", "view", Scope.ORGANIZATION, 1),
    _permission("documents.view_confidential", "View Confidential Documents",
                "Access to confidential documents",
                "access", "view", Scope.DEPARTMENT, 2),
    _permission("documents.view_secret", "View Secret Documents",
                "Access to secret documents",
                "access", "view", Scope.TEAM, 3),
    _permission("documents.view_topsecret", "View Top Secret Documents",
                "Access to top secret documents",
                "access", "view", Scope.OWN, 4),
    _permission("documents.upload", "Upload Documents",
                "Upload and manage documents",
                "crud", "create", Scope.DEPARTMENT, 2),

    # Dashboard
    _permission("dashboard.view", "View Dashboard",
                "Access to main dashboard",
                "access", "view", Scope.OWN, 1),
    _permission("dashboard.analytics", "View Analytics",
                "Access to advanced analytics and reports",
                "analytics", "view", Scope.DEPARTMENT, 2),

    # Personal profile
    _permission("profile.view", "View Profile",
                "View own personal profile",
                "access", "view", Scope.OWN, 1),
    _permission("profile.edit", "Edit Profile",
                "Edit own personal profile",
                "crud", "edit", Scope.OWN, 1),

    # System administration
    _permission("system.users", "User Management",
                "Manage system users and accounts",
                "admin", "manage", Scope.ORGANIZATION, 4),
    _permission("system.roles", "Role Management",
                "Manage roles and permissions",
                "admin", "manage", Scope.ORGANIZATION, 4),
    _permission("system.audit", "Audit Logs",
                "View system audit logs and security events",
                "admin", "view", Scope.ORGANIZATION, 4),
]


DEFAULT_ROLES: List[Role] = [
    Role(
        id="role_basic_1",
        name="basic_user_1",
        display_name="Basic User 1",
        description="Entry-level user with basic access to essential features",
        security_clearance_level=1,
        max_security_level=1,
        priority=1,
        is_system_role=True,
    ),
    Role(
        id="role_basic_2",
        name="basic_user_2",
        display_name="Basic User 2",
        description="Basic user with slightly elevated permissions",
        security_clearance_level=1,
        max_security_level=1,
        priority=2,
        is_system_role=True,
    ),
    Role(
        id="role_advance_1",
        name="advance_user_1",
        display_name="Advance User 1",
        description="Advanced user with departmental access and some management capabilities",
        security_clearance_level=2,
        max_security_level=2,
        priority=3,
        is_system_role=True,
        can_manage_users=True,
    ),
    Role(
        id="role_advance_2",
        name="advance_user_2",
        display_name="Advance User 2",
        description="Senior advanced user with cross-departmental access",
        security_clearance_level=2,
        max_security_level=2,
        priority=4,
        is_system_role=True,
        can_assign_roles=True,
        can_manage_users=True,
    ),
    Role(
        id="role_administrator",
        name="administrator",
        display_name="Administrator",
        description="System administrator with high-level access and management capabilities",
        security_clearance_level=3,
        max_security_level=3,
        priority=5,
        is_system_role=True,
        can_assign_roles=True,
        can_manage_users=True,
    ),
    Role(
        id="role_system_administrator",
        name="system_administrator",
        display_name="System Administrator",
        description="Highest level system administrator with full access to all features",
        security_clearance_level=4,
        max_security_level=4,
        priority=6,
        is_system_role=True,
        can_assign_roles=True,
        can_manage_users=True,
    ),
]


BASIC_USER_1_PERMISSIONS = [
    "dashboard.view", "profile.view", "profile.edit",
    "documents.view_public", "callcenter.view",
]

BASIC_USER_2_PERMISSIONS = BASIC_USER_1_PERMISSIONS + [
    "callcenter.create", "hr.view", "programs.view",
]

ADVANCE_USER_1_PERMISSIONS = BASIC_USER_2_PERMISSIONS + [
    "dashboard.analytics",
    "documents.view_confidential", "documents.upload",
    "callcenter.edit_own",
    "hr.employees.view_team",
    "programs.create",
]

ADVANCE_USER_2_PERMISSIONS = ADVANCE_USER_1_PERMISSIONS + [
    "callcenter.edit_all",
    "hr.employees.create",
]

ADMINISTRATOR_PERMISSIONS = ADVANCE_USER_2_PERMISSIONS + [
    "documents.view_secret",
    "callcenter.manage",
    "hr.payroll.view",
    "programs.manage",
]

SYSTEM_ADMINISTRATOR_PERMISSIONS = ADMINISTRATOR_PERMISSIONS + [
    "documents.view_topsecret",
    "system.users", "system.roles", "system.audit",
]

DEFAULT_ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "role_basic_1": BASIC_USER_1_PERMISSIONS,
    "role_basic_2": BASIC_USER_2_PERMISSIONS,
    "role_advance_1": ADVANCE_USER_1_PERMISSIONS,
    "role_advance_2": ADVANCE_USER_2_PERMISSIONS,
    "role_administrator": ADMINISTRATOR_PERMISSIONS,
    "role_system_administrator": SYSTEM_ADMINISTRATOR_PERMISSIONS,
}


# Department capability tags, independent of role
DEFAULT_DEPARTMENT_PERMISSIONS: Dict[str, List[str]] = {
    "EXECUTIVE_LEADERSHIP": ["strategic_planning", "executive_reports", "board_communications"],
    "FINANCE_AND_ADMINISTRATION": ["financial_management", "budget_oversight", "admin_operations"],
    "PROGRAMS_AND_OPERATIONS": ["program_management", "field_operations", "beneficiary_management"],
    "HUMAN_RESOURCES": ["staff_management", "recruitment_full", "performance_management"],
    "GRANTS_AND_COMPLIANCE": ["grant_applications", "donor_reports", "compliance_monitoring", "audit_support"],
    "COMMUNICATIONS_AND_ADVOCACY": ["media_relations", "content_creation", "social_media", "advocacy_campaigns"],
    # Legacy departments
    "HR": ["hr_policies", "staff_management", "recruitment_full"],
    "FINANCE": ["financial_reports", "budget_management"],
    "PROGRAMS": ["project_management", "field_operations"],
    "CALL_CENTER": ["customer_service", "data_entry", "reporting"],
    "INVENTORY": ["asset_tracking", "procurement_support", "maintenance_logs"],
    "DOCUMENTS": ["document_classification", "archive_management", "version_control"],
}


# Suggested starting role per department (role names)
DEPARTMENT_DEFAULT_ROLES: Dict[str, str] = {
    "EXECUTIVE_LEADERSHIP": "system_administrator",
    "FINANCE_AND_ADMINISTRATION": "advance_user_2",
    "PROGRAMS_AND_OPERATIONS": "advance_user_1",
    "HUMAN_RESOURCES": "administrator",
    "GRANTS_AND_COMPLIANCE": "advance_user_2",
    "COMMUNICATIONS_AND_ADVOCACY": "advance_user_1",
    # Legacy departments
    "HR": "administrator",
    "FINANCE": "advance_user_1",
    "PROGRAMS": "advance_user_1",
    "CALL_CENTER": "basic_user_1",
    "INVENTORY": "basic_user_2",
    "DOCUMENTS": "advance_user_1",
}


def get_default_role_permissions(role_key: str) -> List[str]:
    """Get the seeded permission names for a default role (by id or name)."""
    for role in DEFAULT_ROLES:
        if role_key in (role.id, role.name):
            return list(DEFAULT_ROLE_PERMISSIONS[role.id])
    raise ValueError(f"Unknown default role: {role_key}")


def default_role_grants(granted_by: str = "system") -> List[RoleGrant]:
    return [
        RoleGrant(role_id=role_id, permission=name, granted_by=granted_by)
        for role_id, names in DEFAULT_ROLE_PERMISSIONS.items()
        for name in names
    ]


def default_department_roles() -> DepartmentRoleDefaults:
    return DepartmentRoleDefaults(DEPARTMENT_DEFAULT_ROLES)


def build_default_snapshot() -> CatalogSnapshot:
    """Validated snapshot of the default catalog."""
    return build_snapshot(
        roles=RoleCatalog(DEFAULT_ROLES),
        permissions=PermissionCatalog(DEFAULT_PERMISSIONS),
        grants=RolePermissionGrants(default_role_grants()),
        departments=DepartmentPermissionTable(DEFAULT_DEPARTMENT_PERMISSIONS),
    )
