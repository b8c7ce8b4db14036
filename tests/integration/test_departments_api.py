"""Integration tests for department and membership endpoints."""

import pytest

from tasktrack.db.models import Department, UserRole

from tests.factories import auth_headers, create_role, create_user


pytestmark = pytest.mark.integration


class TestDepartments:
    
    def test_owner_creates_department(self, client, world, audit_entries):
        response = client.post(
            "/api/departments",
            json={"name": "Research", "description": "R&D"},
            headers=auth_headers(world.owner),
        )
        
        assert response.status_code == 201
        data = response.json()
        assert data["orgId"] == str(world.org.id)
        
        [entry] = audit_entries(action="create")
        assert entry.resource == "department"
        assert entry.resource_id == data["id"]
        assert entry.details["departmentId"] == data["id"]
        assert str(entry.department_id) == data["id"]
    
    def test_admin_cannot_create_department(self, client, world, audit_entries):
        response = client.post(
            "/api/departments", json={"name": "Shadow IT"}, headers=auth_headers(world.admin)
        )
        
        assert response.status_code == 403
        [entry] = audit_entries(action="access_denied")
        assert entry.resource == "department"
        assert entry.details == {"originalAction": "create"}
    
    def test_list_scoped_to_roles(self, client, world):
        response = client.get("/api/departments", headers=auth_headers(world.admin))
        assert [d["name"] for d in response.json()] == ["Engineering"]
        
        response = client.get("/api/departments", headers=auth_headers(world.owner))
        assert [d["name"] for d in response.json()] == ["Engineering", "Operations"]
    
    def test_read_requires_department_permission(self, client, world):
        response = client.get(f"/api/departments/{world.eng.id}", headers=auth_headers(world.admin))
        assert response.status_code == 200
        assert response.json()["name"] == "Engineering"
        
        response = client.get(f"/api/departments/{world.ops.id}", headers=auth_headers(world.admin))
        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: read on department"
        
        response = client.get(f"/api/departments/{world.eng.id}", headers=auth_headers(world.viewer))
        assert response.status_code == 403
    
    def test_owner_cannot_read_foreign_department(self, client, world, db_session):
        other_owner = create_user(db_session, is_owner=True)
        db_session.commit()
        response = client.get(f"/api/departments/{world.eng.id}", headers=auth_headers(other_owner))
        assert response.status_code == 404
    
    def test_owner_updates_department(self, client, world, audit_entries):
        response = client.put(
            f"/api/departments/{world.eng.id}",
            json={"description": "Builds things"},
            headers=auth_headers(world.owner),
        )
        
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Engineering"
        assert data["description"] == "Builds things"
        
        [entry] = audit_entries(action="update")
        assert entry.resource == "department"
        assert entry.resource_id == str(world.eng.id)
        assert entry.department_id == world.eng.id
    
    def test_admin_cannot_update_department(self, client, world, audit_entries):
        response = client.put(
            f"/api/departments/{world.eng.id}",
            json={"name": "Renamed"},
            headers=auth_headers(world.admin),
        )
        
        assert response.status_code == 403
        assert response.json()["detail"] == "Only the organization owner can manage departments"
        [entry] = audit_entries(action="access_denied")
        assert entry.resource == "department"
        assert entry.department_id == world.eng.id
        assert entry.details["originalAction"] == "update"
    
    def test_update_rejects_empty_name(self, client, world):
        response = client.put(
            f"/api/departments/{world.eng.id}", json={"name": ""}, headers=auth_headers(world.owner)
        )
        assert response.status_code == 422
    
    def test_owner_deletes_empty_department(self, client, world, db_session, audit_entries):
        ops_id = world.ops.id
        response = client.delete(f"/api/departments/{ops_id}", headers=auth_headers(world.owner))
        
        assert response.status_code == 204
        db_session.expire_all()
        assert db_session.query(Department).filter(Department.id == ops_id).count() == 0
        
        [entry] = audit_entries(action="delete")
        assert entry.resource == "department"
        assert entry.resource_id == str(ops_id)
        assert entry.department_id == ops_id
    
    def test_delete_drops_role_assignments(self, client, world, db_session):
        newcomer = create_user(db_session, org=world.org)
        create_role(db_session, user=newcomer, department=world.ops)
        db_session.commit()
        newcomer_id = newcomer.id
        
        response = client.delete(f"/api/departments/{world.ops.id}", headers=auth_headers(world.owner))
        
        assert response.status_code == 204
        db_session.expire_all()
        assert db_session.query(UserRole).filter(UserRole.user_id == newcomer_id).count() == 0
    
    def test_department_with_tasks_cannot_be_deleted(self, client, world):
        response = client.delete(f"/api/departments/{world.eng.id}", headers=auth_headers(world.owner))
        assert response.status_code == 409
        assert response.json()["detail"] == "Department still has tasks"
    
    def test_admin_cannot_delete_department(self, client, world, audit_entries):
        response = client.delete(f"/api/departments/{world.eng.id}", headers=auth_headers(world.admin))
        
        assert response.status_code == 403
        [entry] = audit_entries(action="access_denied")
        assert entry.department_id == world.eng.id
        assert entry.details["originalAction"] == "delete"
    
    def test_owner_cannot_update_foreign_department(self, client, world, db_session):
        other_owner = create_user(db_session, is_owner=True)
        db_session.commit()
        response = client.put(
            f"/api/departments/{world.eng.id}", json={"name": "Mine"}, headers=auth_headers(other_owner)
        )
        assert response.status_code == 404


class TestMembers:
    
    def test_admin_cannot_grant_admin(self, client, world, db_session, audit_entries):
        newcomer = create_user(db_session, org=world.org)
        db_session.commit()
        
        response = client.post(
            f"/api/departments/{world.eng.id}/members",
            json={"userId": str(newcomer.id), "role": "admin"},
            headers=auth_headers(world.admin),
        )
        
        assert response.status_code == 403
        [entry] = audit_entries(action="access_denied")
        assert entry.resource == "member"
        assert entry.department_id == world.eng.id
        assert entry.details["originalAction"] == "create"
    
    def test_admin_invites_viewer(self, client, world, db_session, audit_entries):
        newcomer = create_user(db_session, org=world.org, name="New Comer")
        db_session.commit()
        
        response = client.post(
            f"/api/departments/{world.eng.id}/members",
            json={"userId": str(newcomer.id), "role": "viewer"},
            headers=auth_headers(world.admin),
        )
        
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "viewer"
        assert data["name"] == "New Comer"
        
        [entry] = audit_entries(action="create")
        assert entry.resource == "member"
        assert entry.department_id == world.eng.id
        assert entry.resource_id == data["id"]
    
    def test_owner_grants_admin(self, client, world, db_session):
        newcomer = create_user(db_session, org=world.org)
        db_session.commit()
        
        response = client.post(
            f"/api/departments/{world.ops.id}/members",
            json={"userId": str(newcomer.id), "role": "admin"},
            headers=auth_headers(world.owner),
        )
        assert response.status_code == 201
    
    def test_duplicate_assignment_conflicts(self, client, world):
        response = client.post(
            f"/api/departments/{world.eng.id}/members",
            json={"userId": str(world.viewer.id), "role": "viewer"},
            headers=auth_headers(world.owner),
        )
        assert response.status_code == 409
    
    def test_cannot_invite_outsider_or_owner(self, client, world):
        for target in (world.outsider, world.owner):
            response = client.post(
                f"/api/departments/{world.eng.id}/members",
                json={"userId": str(target.id), "role": "viewer"},
                headers=auth_headers(world.owner),
            )
            assert response.status_code == 403
    
    def test_viewer_cannot_invite(self, client, world, db_session):
        newcomer = create_user(db_session, org=world.org)
        db_session.commit()
        
        response = client.post(
            f"/api/departments/{world.eng.id}/members",
            json={"userId": str(newcomer.id), "role": "viewer"},
            headers=auth_headers(world.viewer),
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: invite on user"
    
    def test_members_listed_for_members(self, client, world):
        response = client.get(f"/api/departments/{world.eng.id}/members", headers=auth_headers(world.viewer))
        assert response.status_code == 200
        assert sorted(m["role"] for m in response.json()) == ["admin", "viewer"]
        
        response = client.get(f"/api/departments/{world.ops.id}/members", headers=auth_headers(world.viewer))
        assert response.status_code == 403
    
    def test_admin_removes_viewer_not_admin(self, client, world, db_session, audit_entries):
        response = client.delete(
            f"/api/departments/{world.eng.id}/members/{world.admin.id}",
            headers=auth_headers(world.admin),
        )
        assert response.status_code == 403
        
        response = client.delete(
            f"/api/departments/{world.eng.id}/members/{world.viewer.id}",
            headers=auth_headers(world.admin),
        )
        assert response.status_code == 204
        
        db_session.expire_all()
        assert db_session.query(UserRole).filter(UserRole.user_id == world.viewer.id).count() == 0
        
        [entry] = audit_entries(action="delete")
        assert entry.resource == "member"
        assert entry.resource_id == str(world.viewer.id)
        assert entry.department_id == world.eng.id
    
    def test_remove_missing_member(self, client, world):
        response = client.delete(
            f"/api/departments/{world.eng.id}/members/{world.outsider.id}",
            headers=auth_headers(world.owner),
        )
        assert response.status_code == 404
    
    def test_owner_changes_member_role(self, client, world, db_session, audit_entries):
        response = client.put(
            f"/api/departments/{world.eng.id}/members/{world.viewer.id}",
            json={"role": "admin"},
            headers=auth_headers(world.owner),
        )
        
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "admin"
        assert data["userId"] == str(world.viewer.id)
        assert data["name"] == "Vic Viewer"
        
        db_session.expire_all()
        assignment = db_session.query(UserRole).filter(UserRole.user_id == world.viewer.id).one()
        assert assignment.role == "admin"
        
        [entry] = audit_entries(action="update")
        assert entry.resource == "member"
        assert entry.resource_id == str(world.viewer.id)
        assert entry.department_id == world.eng.id
    
    def test_admin_cannot_change_member_role(self, client, world, audit_entries):
        response = client.put(
            f"/api/departments/{world.eng.id}/members/{world.viewer.id}",
            json={"role": "admin"},
            headers=auth_headers(world.admin),
        )
        
        assert response.status_code == 403
        assert response.json()["detail"] == "Only the organization owner can change member roles"
        [entry] = audit_entries(action="access_denied")
        assert entry.resource == "member"
        assert entry.department_id == world.eng.id
    
    def test_change_role_of_missing_member(self, client, world):
        response = client.put(
            f"/api/departments/{world.ops.id}/members/{world.viewer.id}",
            json={"role": "admin"},
            headers=auth_headers(world.owner),
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Member not found in this department"
    
    def test_change_role_rejects_unknown_role(self, client, world):
        response = client.put(
            f"/api/departments/{world.eng.id}/members/{world.viewer.id}",
            json={"role": "owner"},
            headers=auth_headers(world.owner),
        )
        assert response.status_code == 422
