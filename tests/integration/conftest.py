"""Shared fixtures for API integration tests."""

import pytest
from types import SimpleNamespace

from tasktrack.db.models import AuditLog, RoleName

from tests.factories import (
    create_department,
    create_organization,
    create_role,
    create_task,
    create_user,
)


@pytest.fixture
def world(db_session):
    """
    One organization with:
    - an owner
    - Engineering: an admin and a viewer
    - Operations: no members
    - a task in Engineering created by the admin and assigned to the viewer
    - a task in Engineering the viewer has nothing to do with
    
    plus an outsider from another organization.
    """
    org = create_organization(db_session, name="Acme")
    owner = create_user(db_session, org=org, is_owner=True, name="Olive Owner")
    eng = create_department(db_session, org=org, name="Engineering")
    ops = create_department(db_session, org=org, name="Operations")
    admin = create_user(db_session, org=org, name="Ada Admin")
    viewer = create_user(db_session, org=org, name="Vic Viewer")
    create_role(db_session, user=admin, department=eng, role=RoleName.ADMIN)
    create_role(db_session, user=viewer, department=eng, role=RoleName.VIEWER)
    assigned = create_task(db_session, department=eng, created_by=admin, assigned_to=viewer, title="Assigned")
    unrelated = create_task(db_session, department=eng, created_by=admin, title="Unrelated")
    outsider = create_user(db_session, name="Out Sider")
    db_session.commit()
    
    return SimpleNamespace(
        org=org,
        owner=owner,
        eng=eng,
        ops=ops,
        admin=admin,
        viewer=viewer,
        assigned=assigned,
        unrelated=unrelated,
        outsider=outsider,
    )


@pytest.fixture
def audit_entries(db_session):
    """Return the audit entries currently stored, oldest first."""
    def fetch(**filters):
        db_session.expire_all()
        query = db_session.query(AuditLog).filter_by(**filters)
        return query.order_by(AuditLog.timestamp).all()
    return fetch
