"""RBAC (Role-Based Access Control) module for TaskTrack.

Defines the permission matrix, the decision engine, and the request-time guards.
"""

from .permissions import (
    Action,
    Resource,
    Requirement,
    DEFAULT_PERMISSION_MATRIX,
    ENDPOINT_REQUIREMENTS,
    get_requirement,
)
from .checker import AccessControlService, as_uuid
from .context import RequestContext, ContextResolver
from .guards import PermissionGuard, TaskOwnershipGuard
from .errors import (
    AccessError,
    Unauthenticated,
    PermissionDenied,
    ContextUnresolvable,
    AuditAccessDenied,
    ResourceNotFound,
)

__all__ = [
    "Action",
    "Resource",
    "Requirement",
    "DEFAULT_PERMISSION_MATRIX",
    "ENDPOINT_REQUIREMENTS",
    "get_requirement",
    "AccessControlService",
    "as_uuid",
    "RequestContext",
    "ContextResolver",
    "PermissionGuard",
    "TaskOwnershipGuard",
    "AccessError",
    "Unauthenticated",
    "PermissionDenied",
    "ContextUnresolvable",
    "AuditAccessDenied",
    "ResourceNotFound",
]
