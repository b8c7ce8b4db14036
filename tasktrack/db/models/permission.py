import uuid
from sqlalchemy import Column, String, UniqueConstraint, Uuid

from tasktrack.db.base import Base


class Permission(Base):
    """One row of the (action, resource, role) allow-list.

    Absence of a matching row means denial.
    """
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("action", "resource", "role", name="uq_permissions_triple"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(String(50), nullable=False)
    resource = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Permission {self.role}: {self.action} {self.resource}>"
