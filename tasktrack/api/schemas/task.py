from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from tasktrack.db.models import TaskStatus
from .common import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    department_id: UUID
    assigned_to_id: Optional[UUID] = None


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    assigned_to_id: Optional[UUID] = None


class TaskReorder(CamelModel):
    status: TaskStatus
    position: int = Field(..., ge=0)


class TaskResponse(CamelModel):
    id: UUID
    title: str
    description: Optional[str]
    status: str
    position: int
    department_id: UUID
    created_by_id: UUID
    assigned_to_id: Optional[UUID]
    created_at: datetime
    updated_at: Optional[datetime]
