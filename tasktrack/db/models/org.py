import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from tasktrack.db.base import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="organization")
    departments = relationship("Department", back_populates="organization")
