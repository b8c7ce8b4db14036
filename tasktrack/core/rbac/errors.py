"""Authorization errors raised by the decision pipeline.

Each error carries the HTTP status the API layer renders it as.
"""


class AccessError(Exception):
    """Base class for request-fatal authorization outcomes."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(AccessError):
    """No authenticated user on the request."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDenied(AccessError):
    """Role, ownership or matrix check failed."""

    status_code = 403


class ContextUnresolvable(PermissionDenied):
    """No department could be determined for a permission check."""

    def __init__(self, message: str = "Unable to determine department context for permission check"):
        super().__init__(message)


class AuditAccessDenied(PermissionDenied):
    """Caller administers no department and is not the owner."""

    def __init__(self, message: str = "You do not have permission to view audit logs"):
        super().__init__(message)


class ResourceNotFound(AccessError):
    """Target entity does not exist."""

    status_code = 404
