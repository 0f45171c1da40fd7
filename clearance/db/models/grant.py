"""Grant tables: role -> permission and department -> capability tag."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey

from clearance.db.base import Base


class RoleGrantRecord(Base):
    """One row per (role, permission); re-granting is an upsert."""
    __tablename__ = "role_permissions"

    role_id = Column(String(100), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission = Column(String(150), ForeignKey("permissions.name"), primary_key=True)
    granted_by = Column(String(100), nullable=False, default="system")
    granted_at = Column(DateTime, default=datetime.utcnow)


class DepartmentPermissionRecord(Base):
    """Supplemental capability tag for a department.

    ``permission`` may name a catalog permission or be an opaque tag, so it
    carries no foreign key.
    """
    __tablename__ = "department_permissions"

    department_key = Column(String(100), primary_key=True)
    permission = Column(String(150), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)
