"""Request context and department resolution.

The context is created once per request and threaded by reference through
both guards in a fixed order, so a task loaded while resolving the
department is reused by the ownership guard and by the handler.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from tasktrack.db.models import Task
from .checker import as_uuid

# Wire names for the identifiers the resolver looks at
DEPARTMENT_FIELD = "departmentId"   # body and query string
DEPARTMENT_PARAM = "department_id"  # route path
TARGET_PARAM = "task_id"            # route path


@dataclass
class RequestContext:
    """What the guards know about one inbound request."""
    user: Optional[Any] = None
    body: Dict[str, Any] = field(default_factory=dict)
    path_params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    resolved_task: Optional[Task] = None
    task_department_id: Optional[uuid.UUID] = None

    @property
    def target_id(self) -> Optional[str]:
        return self.path_params.get(TARGET_PARAM)


class ContextResolver:
    """Finds the department a request concerns."""

    def __init__(self, db: Session):
        self.db = db

    def load_task(self, ctx: RequestContext) -> Optional[Task]:
        """Return the route's target task, soft-deleted included, caching it on the context.

        The task's department id is kept alongside as a plain value; it stays
        readable after the session that loaded the task is gone.
        """
        if ctx.resolved_task is not None:
            return ctx.resolved_task

        task_id = as_uuid(ctx.target_id)
        if task_id is None:
            return None

        task = self.db.query(Task).filter(Task.id == task_id).first()
        if task is not None:
            ctx.resolved_task = task
            ctx.task_department_id = task.department_id
        return task

    def resolve_department_id(self, ctx: RequestContext) -> Optional[uuid.UUID]:
        """
        Resolve the department in priority order:
        1. body ``departmentId``: create payloads
        2. path ``department_id``: /departments/{department_id}/...
        3. query ``departmentId``: filtered reads
        4. target task's department: /tasks/{task_id} routes
        """
        explicit = (
            ctx.body.get(DEPARTMENT_FIELD)
            or ctx.path_params.get(DEPARTMENT_PARAM)
            or ctx.query.get(DEPARTMENT_FIELD)
        )
        if explicit:
            return as_uuid(explicit)

        if ctx.target_id:
            task = self.load_task(ctx)
            if task is not None:
                return task.department_id

        return None
