"""Authorization decision engine for TaskTrack.

Owner > department admin > department viewer. Every predicate here answers
yes/no and never raises; callers turn a ``False`` into the right error.
"""

import uuid
from typing import Optional, List, Iterable, Union

from sqlalchemy import and_, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Session

from tasktrack.db.models import Department, Permission, UserRole, RoleName


def as_uuid(value) -> Optional[uuid.UUID]:
    """Coerce a request-supplied identifier to a UUID, or None if it is not one."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def loaded_roles(user) -> Optional[Iterable]:
    """Return the user's role assignments if the caller already loaded them.

    For ORM instances this only counts an eagerly loaded ``roles`` relationship;
    touching an unloaded one would issue the very query the fast path avoids.
    """
    try:
        state = inspect(user)
    except NoInspectionAvailable:
        return getattr(user, "roles", None)
    if "roles" in state.unloaded:
        return None
    return user.roles


def _value(member) -> str:
    return member.value if hasattr(member, "value") else str(member)


class AccessControlService:
    """Answers authorization questions about a user against the role store."""
    
    def __init__(self, db: Session):
        self.db = db
    
    def is_owner(self, user) -> bool:
        """Owner bypasses all department-scoped checks."""
        return bool(getattr(user, "is_owner", False))
    
    def role_in_department(self, user, department_id) -> Optional[RoleName]:
        """
        Resolve the user's role in a department.
        
        Uses the user's preloaded role assignments when present, otherwise
        issues a single point lookup on (user_id, department_id).
        """
        department_id = as_uuid(department_id)
        if department_id is None:
            return None
        
        roles = loaded_roles(user)
        if roles is not None:
            for assignment in roles:
                if as_uuid(assignment.department_id) == department_id:
                    return RoleName(assignment.role)
            return None
        
        assignment = self.db.query(UserRole).filter(
            and_(UserRole.user_id == user.id, UserRole.department_id == department_id)
        ).first()
        return RoleName(assignment.role) if assignment else None
    
    def _task_gate(self, user, task) -> bool:
        if self.is_owner(user):
            return True
        
        role = self.role_in_department(user, task.department_id)
        if role is None:
            return False
        if role == RoleName.ADMIN:
            return True
        
        # Viewer: only tasks they created or were assigned
        return task.created_by_id == user.id or task.assigned_to_id == user.id
    
    def can_access_task(self, user, task) -> bool:
        """Can the user read this task?"""
        return self._task_gate(user, task)
    
    def can_modify_task(self, user, task) -> bool:
        """Can the user edit or soft-delete this task?

        Read and write share one gate; both names exist because
        callers reason about them separately.
        """
        return self._task_gate(user, task)
    
    def can_create_task_in_department(self, user, department_id) -> bool:
        """Owner or department admin only."""
        if self.is_owner(user):
            return True
        return self.role_in_department(user, department_id) == RoleName.ADMIN
    
    def can_manage_department_members(
        self,
        user,
        department_id,
        target_role: Union[RoleName, str],
    ) -> bool:
        """
        Can the user invite or remove members holding ``target_role``?
        
        - Granting ADMIN: owner only
        - Granting VIEWER: owner or an admin of the department
        """
        if self.is_owner(user):
            return True
        
        if RoleName(_value(target_role)) == RoleName.ADMIN:
            return False
        
        return self.role_in_department(user, department_id) == RoleName.ADMIN
    
    def has_permission(self, user, department_id, action, resource) -> bool:
        """Check the permission matrix for the user's role in the department."""
        if self.is_owner(user):
            return True
        
        role = self.role_in_department(user, department_id)
        if role is None:
            return False
        
        count = self.db.query(Permission).filter(
            and_(
                Permission.action == _value(action),
                Permission.resource == _value(resource),
                Permission.role == role.value,
            )
        ).count()
        return count > 0
    
    def departments_for_user(self, user_id) -> List[Department]:
        """All departments where the user holds a department-scoped role."""
        return (
            self.db.query(Department)
            .join(UserRole, UserRole.department_id == Department.id)
            .filter(and_(UserRole.user_id == user_id, UserRole.department_id.isnot(None)))
            .order_by(Department.name)
            .all()
        )
    
    def admin_departments_for_user(self, user_id) -> List[Department]:
        """Departments where the user is an admin."""
        return (
            self.db.query(Department)
            .join(UserRole, UserRole.department_id == Department.id)
            .filter(
                and_(
                    UserRole.user_id == user_id,
                    UserRole.department_id.isnot(None),
                    UserRole.role == RoleName.ADMIN.value,
                )
            )
            .order_by(Department.name)
            .all()
        )
