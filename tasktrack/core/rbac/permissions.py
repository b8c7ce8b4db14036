"""Permission model for TaskTrack RBAC.

A permission is an (action, resource, role) triple. The matrix is a static
allow-list: if no row matches, the generic permission check denies.

Endpoints declare what they need as plain data in ``ENDPOINT_REQUIREMENTS``,
built once at import time and handed to the guards.
"""

from enum import Enum
from typing import NamedTuple, Optional, FrozenSet, Dict

from tasktrack.db.models.user_role import RoleName


class Resource(str, Enum):
    """Resources that can be protected by permissions."""
    TASK = "task"
    DEPARTMENT = "department"
    USER = "user"


class Action(str, Enum):
    """Actions that can be performed on resources."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    INVITE = "invite"


class Requirement(NamedTuple):
    """What an endpoint demands of the caller's department role."""
    action: Action
    resource: Resource

    def __str__(self) -> str:
        return f"{self.action.value} on {self.resource.value}"


class PermissionEntry(NamedTuple):
    action: Action
    resource: Resource
    role: RoleName


# Default permission matrix, installed by the seed routine
DEFAULT_PERMISSION_MATRIX: FrozenSet[PermissionEntry] = frozenset([
    # Admin
    PermissionEntry(Action.CREATE, Resource.TASK, RoleName.ADMIN),
    PermissionEntry(Action.READ, Resource.TASK, RoleName.ADMIN),
    PermissionEntry(Action.UPDATE, Resource.TASK, RoleName.ADMIN),
    PermissionEntry(Action.DELETE, Resource.TASK, RoleName.ADMIN),
    PermissionEntry(Action.READ, Resource.DEPARTMENT, RoleName.ADMIN),
    PermissionEntry(Action.INVITE, Resource.USER, RoleName.ADMIN),
    # Viewer
    PermissionEntry(Action.READ, Resource.TASK, RoleName.VIEWER),
])


# Per-endpoint requirements. None means the permission guard lets the request
# through and the handler applies its own scoping.
ENDPOINT_REQUIREMENTS: Dict[str, Optional[Requirement]] = {
    "tasks.create": Requirement(Action.CREATE, Resource.TASK),
    "tasks.list": None,
    "tasks.read": Requirement(Action.READ, Resource.TASK),
    # Modify routes only need visibility here; ownership is decided by TaskOwnershipGuard
    "tasks.update": Requirement(Action.READ, Resource.TASK),
    "tasks.reorder": Requirement(Action.READ, Resource.TASK),
    "tasks.delete": Requirement(Action.READ, Resource.TASK),
    "departments.create": None,
    "departments.list": None,
    "departments.read": Requirement(Action.READ, Resource.DEPARTMENT),
    "departments.update": None,
    "departments.delete": None,
    "members.invite": Requirement(Action.INVITE, Resource.USER),
    "members.list": None,
    "members.update": None,
    "members.remove": Requirement(Action.INVITE, Resource.USER),
    "audit.list": None,
}


def get_requirement(endpoint_id: str) -> Optional[Requirement]:
    """Look up an endpoint's requirement. Unknown endpoints are a programming error."""
    if endpoint_id not in ENDPOINT_REQUIREMENTS:
        raise KeyError(f"No requirement declared for endpoint: {endpoint_id}")
    return ENDPOINT_REQUIREMENTS[endpoint_id]
