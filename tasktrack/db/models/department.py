import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from tasktrack.db.base import Base


class Department(Base):
    """Authorization scope beneath an organization. Admin and viewer roles attach here."""
    __tablename__ = "departments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="departments")
    members = relationship("UserRole", back_populates="department", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.name}>"
