"""Database models for TaskTrack."""

from tasktrack.db.models.org import Organization
from tasktrack.db.models.user import User
from tasktrack.db.models.department import Department
from tasktrack.db.models.user_role import UserRole, RoleName
from tasktrack.db.models.permission import Permission
from tasktrack.db.models.task import Task, TaskStatus
from tasktrack.db.models.audit import AuditLog

__all__ = [
    "Organization",
    "User",
    "Department",
    "UserRole",
    "RoleName",
    "Permission",
    "Task",
    "TaskStatus",
    "AuditLog",
]
