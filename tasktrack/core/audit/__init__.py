"""Audit trail: best-effort recording and RBAC-scoped querying."""

from .service import AuditService, AuditQuery, AuditPage, ACCESS_DENIED

__all__ = ["AuditService", "AuditQuery", "AuditPage", "ACCESS_DENIED"]
