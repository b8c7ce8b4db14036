"""Department membership API endpoints.

Assigns users a role (admin or viewer) within a single department.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import and_
from sqlalchemy.orm import Session

from tasktrack.api.deps import get_db, get_acl, enforce, require_user
from tasktrack.api.routers.departments import get_department_in_org
from tasktrack.api.schemas.department import MemberInvite, MemberResponse, MemberRoleUpdate
from tasktrack.core.rbac import AccessControlService, PermissionDenied, RequestContext
from tasktrack.db.models import User, UserRole

router = APIRouter(prefix="/departments/{department_id}/members", tags=["department-members"])


def _member_response(assignment: UserRole) -> MemberResponse:
    return MemberResponse(
        id=assignment.id,
        user_id=assignment.user_id,
        department_id=assignment.department_id,
        role=assignment.role,
        email=assignment.user.email if assignment.user else None,
        name=assignment.user.name if assignment.user else None,
    )


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    department_id: UUID,
    invite: MemberInvite,
    ctx: RequestContext = Depends(enforce("members.invite")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Give a user of the organization a role in this department."""
    department = get_department_in_org(db, department_id, current_user)
    
    if not acl.can_manage_department_members(current_user, department.id, invite.role):
        raise PermissionDenied("You do not have permission to invite members with this role")
    
    target_user = db.query(User).filter(User.id == invite.user_id).first()
    if not target_user:
        raise HTTPException(status_code=404, detail="User not found")
    if target_user.org_id != current_user.org_id:
        raise PermissionDenied("User does not belong to your organization")
    if target_user.is_owner:
        raise PermissionDenied("Cannot assign a department role to the organization owner")
    
    existing = db.query(UserRole).filter(
        and_(UserRole.user_id == invite.user_id, UserRole.department_id == department.id)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already has a role in this department",
        )
    
    assignment = UserRole(
        user_id=invite.user_id,
        department_id=department.id,
        role=invite.role.value,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    
    return _member_response(assignment)


@router.get("", response_model=List[MemberResponse])
async def list_members(
    department_id: UUID,
    ctx: RequestContext = Depends(enforce("members.list")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """List members of a department. Owner or any department member."""
    department = get_department_in_org(db, department_id, current_user)
    
    if not acl.is_owner(current_user) and acl.role_in_department(current_user, department.id) is None:
        raise PermissionDenied("Only department members can list members")
    
    assignments = db.query(UserRole).filter(UserRole.department_id == department.id).all()
    return [_member_response(a) for a in assignments]


@router.put("/{user_id}", response_model=MemberResponse)
async def update_member_role(
    department_id: UUID,
    user_id: UUID,
    role_data: MemberRoleUpdate,
    ctx: RequestContext = Depends(enforce("members.update")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Change a member's role. Owner only."""
    department = get_department_in_org(db, department_id, current_user)
    
    if not acl.is_owner(current_user):
        raise PermissionDenied("Only the organization owner can change member roles")
    
    assignment = db.query(UserRole).filter(
        and_(UserRole.user_id == user_id, UserRole.department_id == department.id)
    ).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Member not found in this department")
    
    assignment.role = role_data.role.value
    db.commit()
    db.refresh(assignment)
    
    return _member_response(assignment)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    department_id: UUID,
    user_id: UUID,
    ctx: RequestContext = Depends(enforce("members.remove")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
):
    """Remove a member. Admins may only remove viewers."""
    department = get_department_in_org(db, department_id, current_user)
    
    assignment = db.query(UserRole).filter(
        and_(UserRole.user_id == user_id, UserRole.department_id == department.id)
    ).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Member not found in this department")
    
    if not acl.can_manage_department_members(current_user, department.id, assignment.role):
        raise PermissionDenied("You do not have permission to remove this member")
    
    db.delete(assignment)
    db.commit()
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)
