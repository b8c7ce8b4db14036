"""Task API endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import and_, or_, func
from sqlalchemy.orm import Session

from tasktrack.api.deps import get_db, get_acl, enforce, require_user
from tasktrack.api.schemas.common import PaginatedResponse
from tasktrack.api.schemas.task import TaskCreate, TaskUpdate, TaskReorder, TaskResponse
from tasktrack.core.rbac import (
    AccessControlService,
    ContextResolver,
    PermissionDenied,
    RequestContext,
)
from tasktrack.db.models import Department, RoleName, Task, TaskStatus, User

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _load_live_task(ctx: RequestContext, db: Session) -> Task:
    """Return the route's task from the request cache, or 404 if gone or foreign."""
    task = ContextResolver(db).load_task(ctx)
    if task is None or task.is_deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    if task.department.org_id != ctx.user.org_id:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _validate_assignee(db: Session, assignee_id: Optional[UUID], user: User) -> None:
    if assignee_id is None:
        return
    assignee = db.query(User).filter(User.id == assignee_id).first()
    if not assignee or assignee.org_id != user.org_id:
        raise HTTPException(status_code=400, detail="Assignee must belong to your organization")


def _next_position(db: Session, department_id: UUID, task_status: str) -> int:
    current = db.query(func.max(Task.position)).filter(
        and_(
            Task.department_id == department_id,
            Task.status == task_status,
            Task.deleted_at.is_(None),
        )
    ).scalar()
    return 0 if current is None else current + 1


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    ctx: RequestContext = Depends(enforce("tasks.create", ownership=True)),
    db: Session = Depends(get_db),
):
    """Create a task in a department. Owner or department admin."""
    user = ctx.user
    department = db.query(Department).filter(Department.id == task_data.department_id).first()
    if not department or department.org_id != user.org_id:
        raise HTTPException(status_code=404, detail="Department not found")
    
    _validate_assignee(db, task_data.assigned_to_id, user)
    
    task = Task(
        title=task_data.title,
        description=task_data.description,
        status=task_data.status.value,
        position=_next_position(db, department.id, task_data.status.value),
        department_id=department.id,
        created_by_id=user.id,
        assigned_to_id=task_data.assigned_to_id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    
    return TaskResponse.model_validate(task)


@router.get("", response_model=PaginatedResponse[TaskResponse])
async def list_tasks(
    ctx: RequestContext = Depends(enforce("tasks.list")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
    department_id: Optional[UUID] = Query(None, alias="departmentId"),
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    List tasks visible to the caller.
    
    The owner sees every task of the organization. Admins see every task in
    their departments; viewers only tasks they created or were assigned.
    """
    query = db.query(Task).filter(Task.deleted_at.is_(None))
    
    if acl.is_owner(current_user):
        query = query.join(Department).filter(Department.org_id == current_user.org_id)
    else:
        admin_ids, viewer_ids = [], []
        for department in acl.departments_for_user(current_user.id):
            if acl.role_in_department(current_user, department.id) == RoleName.ADMIN:
                admin_ids.append(department.id)
            else:
                viewer_ids.append(department.id)
        
        query = query.filter(
            or_(
                Task.department_id.in_(admin_ids),
                and_(
                    Task.department_id.in_(viewer_ids),
                    or_(
                        Task.created_by_id == current_user.id,
                        Task.assigned_to_id == current_user.id,
                    ),
                ),
            )
        )
    
    if department_id:
        if not acl.is_owner(current_user) and acl.role_in_department(current_user, department_id) is None:
            raise PermissionDenied("You do not have access to this department")
        query = query.filter(Task.department_id == department_id)
    
    if task_status:
        query = query.filter(Task.status == task_status.value)
    
    total = query.count()
    tasks = (
        query.order_by(Task.status, Task.position, Task.created_at)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    
    return PaginatedResponse.create(
        items=[TaskResponse.model_validate(t) for t in tasks],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    ctx: RequestContext = Depends(enforce("tasks.read")),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Get a task by ID."""
    task = _load_live_task(ctx, db)
    if not acl.can_access_task(ctx.user, task):
        raise PermissionDenied("You do not have permission to view this task")
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    task_data: TaskUpdate,
    ctx: RequestContext = Depends(enforce("tasks.update", ownership=True)),
    db: Session = Depends(get_db),
):
    """Update a task."""
    task = _load_live_task(ctx, db)
    
    changes = task_data.model_dump(exclude_unset=True)
    if "assigned_to_id" in changes:
        _validate_assignee(db, changes["assigned_to_id"], ctx.user)
    if changes.get("status") is not None:
        changes["status"] = TaskStatus(changes["status"]).value
    
    for field, value in changes.items():
        if field in ("title", "status") and value is None:
            continue
        setattr(task, field, value)
    task.updated_at = datetime.utcnow()
    
    db.commit()
    db.refresh(task)
    
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}/reorder", response_model=TaskResponse)
async def reorder_task(
    task_id: UUID,
    reorder: TaskReorder,
    ctx: RequestContext = Depends(enforce("tasks.reorder", ownership=True)),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Move a task to a column and position. Owner or department admin."""
    task = _load_live_task(ctx, db)
    
    if not acl.is_owner(ctx.user) and acl.role_in_department(ctx.user, task.department_id) != RoleName.ADMIN:
        raise PermissionDenied("Only the owner or a department admin can reorder tasks")
    
    task.status = reorder.status.value
    task.position = reorder.position
    task.updated_at = datetime.utcnow()
    
    db.commit()
    db.refresh(task)
    
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    ctx: RequestContext = Depends(enforce("tasks.delete", ownership=True)),
    db: Session = Depends(get_db),
):
    """Soft-delete a task."""
    task = _load_live_task(ctx, db)
    task.deleted_at = datetime.utcnow()
    db.commit()
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)
