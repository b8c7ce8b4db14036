"""Task tracking service: department-scoped RBAC and audit trail."""

__version__ = "0.3.0"
