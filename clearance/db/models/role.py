from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text

from clearance.db.base import Base


class RoleRecord(Base):
    __tablename__ = "roles"

    id = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    security_clearance_level = Column(Integer, nullable=False, default=1)
    max_security_level = Column(Integer, nullable=False, default=1)
    priority = Column(Integer, nullable=False, default=0)  # display ordering only
    is_system_role = Column(Boolean, default=False)
    can_assign_roles = Column(Boolean, default=False)
    can_manage_users = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
