from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text

from clearance.db.base import Base


class PermissionRecord(Base):
    __tablename__ = "permissions"

    name = Column(String(150), primary_key=True)
    display_name = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    module = Column(String(100), nullable=False, index=True)
    category = Column(String(50), nullable=False, default="access")
    action = Column(String(50), nullable=False)
    scope = Column(String(20), nullable=False)  # own, team, department, organization
    security_level = Column(Integer, nullable=False, default=1)
    requires_approval = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
