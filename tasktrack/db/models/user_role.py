"""Department-scoped role assignments.

A user holds at most one role per department. ``department_id`` is nullable
only to leave room for the owner's organization-wide standing; admin and
viewer assignments always carry a concrete department.
"""

import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from tasktrack.db.base import Base


class RoleName(str, Enum):
    """Roles that can be assigned within a department."""
    ADMIN = "admin"
    VIEWER = "viewer"


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "department_id", name="uq_user_roles_user_department"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(Uuid, ForeignKey("departments.id", ondelete="CASCADE"), nullable=True, index=True)
    role = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="roles")
    department = relationship("Department", back_populates="members")

    def __repr__(self) -> str:
        return f"<UserRole user={self.user_id} department={self.department_id} role={self.role}>"
