"""Department API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from tasktrack.api.deps import get_db, get_acl, enforce, require_user
from tasktrack.api.schemas.department import DepartmentCreate, DepartmentResponse, DepartmentUpdate
from tasktrack.core.rbac import AccessControlService, PermissionDenied, RequestContext
from tasktrack.db.models import Department, Task, User

router = APIRouter(prefix="/departments", tags=["departments"])


def get_department_in_org(db: Session, department_id: UUID, user: User) -> Department:
    """Load a department of the caller's organization or raise 404."""
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department or department.org_id != user.org_id:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.post("", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    department_data: DepartmentCreate,
    ctx: RequestContext = Depends(enforce("departments.create")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Create a department. Owner only."""
    if not acl.is_owner(current_user):
        raise PermissionDenied("Only the organization owner can manage departments")
    
    department = Department(
        org_id=current_user.org_id,
        name=department_data.name,
        description=department_data.description,
    )
    db.add(department)
    db.commit()
    db.refresh(department)
    
    return DepartmentResponse.model_validate(department)


@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    ctx: RequestContext = Depends(enforce("departments.list")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """List departments: all of the organization for the owner, otherwise those with a role."""
    if acl.is_owner(current_user):
        departments = (
            db.query(Department)
            .filter(Department.org_id == current_user.org_id)
            .order_by(Department.name)
            .all()
        )
    else:
        departments = acl.departments_for_user(current_user.id)
    
    return [DepartmentResponse.model_validate(d) for d in departments]


@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: UUID,
    ctx: RequestContext = Depends(enforce("departments.read")),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Get a department by ID."""
    department = get_department_in_org(db, department_id, current_user)
    return DepartmentResponse.model_validate(department)


@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: UUID,
    department_data: DepartmentUpdate,
    ctx: RequestContext = Depends(enforce("departments.update")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Rename or redescribe a department. Owner only."""
    if not acl.is_owner(current_user):
        raise PermissionDenied("Only the organization owner can manage departments")
    
    department = get_department_in_org(db, department_id, current_user)
    
    for field, value in department_data.model_dump(exclude_unset=True).items():
        setattr(department, field, value)
    
    db.commit()
    db.refresh(department)
    
    return DepartmentResponse.model_validate(department)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: UUID,
    ctx: RequestContext = Depends(enforce("departments.delete")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Delete a department and its role assignments. Owner only.

    Tasks keep their department for life, including soft-deleted ones, so a
    department that still holds any task cannot be deleted.
    """
    if not acl.is_owner(current_user):
        raise PermissionDenied("Only the organization owner can manage departments")
    
    department = get_department_in_org(db, department_id, current_user)
    
    if db.query(Task).filter(Task.department_id == department.id).count():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Department still has tasks",
        )
    
    db.delete(department)
    db.commit()
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)
