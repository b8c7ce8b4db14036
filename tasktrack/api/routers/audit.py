"""Audit log API endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tasktrack.api.deps import get_db, get_acl, enforce, require_user
from tasktrack.api.schemas.audit import AuditLogResponse
from tasktrack.api.schemas.common import PaginatedResponse
from tasktrack.core.audit import AuditQuery, AuditService
from tasktrack.core.config import get_settings
from tasktrack.core.rbac import AccessControlService, RequestContext
from tasktrack.db.models import User

router = APIRouter(prefix="/audit-log", tags=["audit"])

settings = get_settings()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    ctx: RequestContext = Depends(enforce("audit.list")),
    current_user: User = Depends(require_user),
    acl: AccessControlService = Depends(get_acl),
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.audit_page_size_default, ge=1, le=settings.audit_page_size_max),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    action: Optional[str] = Query(None, max_length=50),
    resource: Optional[str] = Query(None, max_length=50),
    department_id: Optional[UUID] = Query(None, alias="departmentId"),
):
    """
    List audit log entries, newest first.
    
    The owner sees the whole organization; department admins see entries
    scoped to their departments; everyone else is refused.
    """
    query = AuditQuery(
        page=page,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
        user_id=user_id,
        action=action,
        resource=resource,
        department_id=department_id,
    )
    result = AuditService(db, acl).find_all(current_user, query)
    
    return PaginatedResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )
