"""Audit log model for TaskTrack.

Entries are write-once: the audit subsystem only ever inserts and queries.
"""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from tasktrack.db.base import Base


class AuditLog(Base):
    """
    Immutable audit log entry.
    
    One row per mutating request or denied attempt. ``department_id``
    mirrors ``details["departmentId"]`` as a typed, indexed column so
    department scoping never has to pattern-match serialized text.
    """
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    
    # Action details
    action = Column(String(100), nullable=False, index=True)
    resource = Column(String(100), nullable=False, index=True)
    resource_id = Column(String(64), nullable=False, default="")
    
    # Actor information (NULL user_id means an unauthenticated actor)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    ip_address = Column(String(64), nullable=False, default="unknown")
    
    # Context
    details = Column(JSON, nullable=False, default=dict)
    department_id = Column(Uuid, nullable=True, index=True)
    
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships (read-only for querying)
    user = relationship("User", back_populates="audit_logs")

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} on {self.resource} by user {self.user_id}>"
    
    @classmethod
    def create_entry(
        cls,
        action: str,
        resource: str,
        *,
        resource_id: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> "AuditLog":
        """
        Factory method to create a new audit log entry.
        
        Args:
            action: Action performed ('create', 'update', 'delete', 'access_denied')
            resource: Resource type ('task', 'department', 'member', ...)
            resource_id: ID of the affected resource, empty when unknown
            user_id: Acting user, None for unauthenticated actors
            ip_address: Client IP address
            details: Free-form context, carries 'departmentId' when determinable
            department_id: Typed copy of the department attribution
        """
        return cls(
            action=action,
            resource=resource,
            resource_id=resource_id or "",
            user_id=user_id,
            ip_address=ip_address or "unknown",
            details=details or {},
            department_id=department_id,
            timestamp=datetime.utcnow(),
        )
