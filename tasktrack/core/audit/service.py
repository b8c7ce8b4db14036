"""Audit service for recording and querying audit log entries."""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, NamedTuple
from uuid import UUID

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tasktrack.core.rbac.checker import AccessControlService, as_uuid
from tasktrack.core.rbac.errors import AuditAccessDenied
from tasktrack.db.models import AuditLog, User

logger = logging.getLogger(__name__)

ACCESS_DENIED = "access_denied"


@dataclass
class AuditQuery:
    """Filters for an audit log read. All set filters are AND-combined."""
    page: int = 1
    limit: int = 20
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    user_id: Optional[UUID] = None
    action: Optional[str] = None
    resource: Optional[str] = None
    department_id: Optional[UUID] = None


class AuditPage(NamedTuple):
    items: List[AuditLog]
    total: int
    page: int
    limit: int
    total_pages: int


def _naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _jsonable(details: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(details, default=str))


class AuditService:
    """
    Records audit entries and answers RBAC-scoped audit queries.
    
    Recording is best effort: a failure is logged and swallowed so auditing
    never breaks the request it observes.
    """
    
    def __init__(self, db: Session, acl: Optional[AccessControlService] = None):
        self.db = db
        self.acl = acl or AccessControlService(db)
    
    def record(
        self,
        action: str,
        resource: str,
        resource_id: Optional[str] = None,
        user_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Persist one audit entry. Returns the entry, or None if it could not be saved."""
        try:
            details = _jsonable(details or {})
            entry = AuditLog.create_entry(
                action,
                resource,
                resource_id=str(resource_id) if resource_id else "",
                user_id=user_id,
                ip_address=ip_address,
                details=details,
                department_id=as_uuid(details.get("departmentId")),
            )
            self.db.add(entry)
            self.db.commit()
            return entry
        except Exception:
            logger.exception("Failed to persist audit log (%s %s)", action, resource)
            self._rollback_quietly()
            return None
    
    def _rollback_quietly(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after audit failure also failed", exc_info=True)
    
    def find_all(self, user, query: AuditQuery) -> AuditPage:
        """
        Query audit logs with RBAC scoping.
        
        - Owner: entries whose acting user belongs to the owner's organization
        - Admin: entries attributed to any department the user administers
        - Anyone else: AuditAccessDenied
        """
        page = query.page or 1
        limit = query.limit or 20
        
        q = self.db.query(AuditLog)
        
        if self.acl.is_owner(user):
            q = q.join(User, AuditLog.user_id == User.id).filter(User.org_id == user.org_id)
        else:
            departments = self.acl.admin_departments_for_user(user.id)
            if not departments:
                raise AuditAccessDenied()
            q = q.filter(AuditLog.department_id.in_([d.id for d in departments]))
        
        conditions = []
        if query.date_from:
            conditions.append(AuditLog.timestamp >= _naive_utc(query.date_from))
        if query.date_to:
            conditions.append(AuditLog.timestamp <= _naive_utc(query.date_to))
        if query.user_id:
            conditions.append(AuditLog.user_id == query.user_id)
        if query.action:
            conditions.append(AuditLog.action == query.action)
        if query.resource:
            conditions.append(AuditLog.resource == query.resource)
        if query.department_id:
            conditions.append(AuditLog.department_id == query.department_id)
        if conditions:
            q = q.filter(and_(*conditions))
        
        total = q.count()
        items = (
            q.order_by(AuditLog.timestamp.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        
        return AuditPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )
