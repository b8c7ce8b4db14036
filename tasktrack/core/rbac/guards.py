"""Request-time enforcement stages.

``PermissionGuard`` checks an endpoint's declared requirement against the
permission matrix. ``TaskOwnershipGuard`` gates task create/modify routes.
Both return True or raise an ``AccessError``.
"""

import logging
from typing import Optional

from .checker import AccessControlService, as_uuid
from .context import ContextResolver, RequestContext, DEPARTMENT_FIELD
from .errors import (
    Unauthenticated,
    PermissionDenied,
    ContextUnresolvable,
    ResourceNotFound,
)
from .permissions import Requirement

logger = logging.getLogger(__name__)


class PermissionGuard:
    """Generic permission check driven by an endpoint requirement."""

    def __init__(self, acl: AccessControlService, resolver: ContextResolver):
        self.acl = acl
        self.resolver = resolver

    def check(self, ctx: RequestContext, requirement: Optional[Requirement]) -> bool:
        if requirement is None:
            return True

        user = ctx.user
        if user is None:
            raise Unauthenticated()

        if self.acl.is_owner(user):
            return True

        department_id = self.resolver.resolve_department_id(ctx)
        if department_id is None:
            logger.info("Denied %s for user %s: no department context", requirement, user.id)
            raise ContextUnresolvable()

        if not self.acl.has_permission(user, department_id, requirement.action, requirement.resource):
            logger.info(
                "Denied %s for user %s in department %s", requirement, user.id, department_id
            )
            raise PermissionDenied(
                f"Permission denied: {requirement.action.value} on {requirement.resource.value}"
            )

        return True


class TaskOwnershipGuard:
    """
    Guard for task create / edit / delete routes.
    
    - Create (no target task id): owner or admin of the body's department.
    - Modify (target task id present): ``can_modify_task`` on the loaded task.
      A missing task is a 404, not a permission error.
    
    Must run after ``PermissionGuard`` on the same context to reuse its task cache.
    """

    def __init__(self, acl: AccessControlService, resolver: ContextResolver):
        self.acl = acl
        self.resolver = resolver

    def check(self, ctx: RequestContext) -> bool:
        user = ctx.user
        if user is None:
            raise Unauthenticated()

        if self.acl.is_owner(user):
            return True

        if ctx.target_id:
            return self._check_modify(ctx, user)
        return self._check_create(ctx, user)

    def _check_create(self, ctx: RequestContext, user) -> bool:
        department_id = as_uuid(ctx.body.get(DEPARTMENT_FIELD))
        if department_id is None:
            raise PermissionDenied("departmentId is required to create a task")

        if not self.acl.can_create_task_in_department(user, department_id):
            logger.info("Denied task create for user %s in department %s", user.id, department_id)
            raise PermissionDenied("You do not have permission to create tasks in this department")

        return True

    def _check_modify(self, ctx: RequestContext, user) -> bool:
        task = self.resolver.load_task(ctx)
        if task is None:
            raise ResourceNotFound("Task not found")

        if not self.acl.can_modify_task(user, task):
            logger.info("Denied task modify for user %s on task %s", user.id, task.id)
            raise PermissionDenied("You do not have permission to modify this task")

        return True
