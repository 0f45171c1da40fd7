"""Database models for the clearance catalog."""

from clearance.db.models.role import RoleRecord
from clearance.db.models.permission import PermissionRecord
from clearance.db.models.grant import RoleGrantRecord, DepartmentPermissionRecord

__all__ = [
    "RoleRecord",
    "PermissionRecord",
    "RoleGrantRecord",
    "DepartmentPermissionRecord",
]
