from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from tasktrack.db.models import RoleName
from .common import CamelModel


class DepartmentCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class DepartmentUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class DepartmentResponse(CamelModel):
    id: UUID
    org_id: UUID
    name: str
    description: Optional[str]
    created_at: datetime


class MemberInvite(CamelModel):
    user_id: UUID
    role: RoleName


class MemberRoleUpdate(CamelModel):
    role: RoleName


class MemberResponse(CamelModel):
    id: UUID
    user_id: UUID
    department_id: UUID
    role: str
    email: Optional[str] = None
    name: Optional[str] = None
