"""API routers for TaskTrack."""

from . import tasks, departments, members, audit

__all__ = ["tasks", "departments", "members", "audit"]
