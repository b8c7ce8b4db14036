"""Database seeding for TaskTrack.

Installs the default permission matrix. The matrix is global and shared by
every organization.
"""

import logging

from sqlalchemy import and_
from sqlalchemy.orm import Session

from tasktrack.db.models import Permission
from tasktrack.core.rbac.permissions import DEFAULT_PERMISSION_MATRIX

logger = logging.getLogger(__name__)


def seed_permissions(db: Session) -> list[Permission]:
    """
    Create the default (action, resource, role) rows.
    
    Idempotent - rows that already exist are returned as they are.
    
    Args:
        db: Database session
        
    Returns:
        List of Permission rows covering the default matrix
    """
    rows = []
    created = 0
    
    for entry in sorted(DEFAULT_PERMISSION_MATRIX):
        existing = db.query(Permission).filter(
            and_(
                Permission.action == entry.action.value,
                Permission.resource == entry.resource.value,
                Permission.role == entry.role.value,
            )
        ).first()
        
        if existing:
            rows.append(existing)
            continue
        
        permission = Permission(
            action=entry.action.value,
            resource=entry.resource.value,
            role=entry.role.value,
        )
        db.add(permission)
        rows.append(permission)
        created += 1
    
    db.flush()
    logger.info("Permission matrix seeded (%d new, %d total)", created, len(rows))
    return rows


def main() -> None:
    from tasktrack.core.config import get_settings
    from tasktrack.core.logger import configure_logging
    from tasktrack.db.session import SessionLocal, init_db

    configure_logging(get_settings())
    init_db()
    db = SessionLocal()
    try:
        seed_permissions(db)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
