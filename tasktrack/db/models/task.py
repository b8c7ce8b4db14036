"""Task model.

Tasks are soft-deleted (``deleted_at``) and never physically removed.
The owning department is fixed at creation.
"""

import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, Index, Uuid
from sqlalchemy.orm import relationship

from tasktrack.db.base import Base


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_department_status", "department_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.TODO.value)
    position = Column(Integer, nullable=False, default=0)  # Order within a status column

    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=False)
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    department = relationship("Department", back_populates="tasks")
    created_by = relationship("User", foreign_keys=[created_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Task {self.title!r} dept={self.department_id}>"
