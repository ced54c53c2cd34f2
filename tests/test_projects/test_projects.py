"""Tests for project administration."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fieldops.db.models import Role
from fieldops.exceptions import NotFound, PolicyViolation, ValidationError
from fieldops.projects.schemas import ProjectCreate
from fieldops.projects.service import ProjectService


@pytest.fixture
def service(db: Session) -> ProjectService:
    return ProjectService(db)


class TestMembership:
    """Tests for attaching accounts to projects."""

    def test_member_role_comes_from_profile(self, service, project, contractor):
        member = service.add_member(project.id, contractor.id)

        assert member.role == Role.CONTRACTOR

    def test_duplicate_member_rejected(self, service, project, consultant):
        with pytest.raises(PolicyViolation):
            service.add_member(project.id, consultant.id)

    def test_staff_cannot_be_member(self, service, project, make_account):
        staff = make_account("ops@fieldops.test", Role.STAFF, full_name="Ope Staff")

        with pytest.raises(ValidationError):
            service.add_member(project.id, staff.id)

    def test_unknown_project(self, service, contractor):
        with pytest.raises(NotFound):
            service.add_member("missing", contractor.id)


def test_list_projects_is_scoped(service, admin, consultant, contractor, project, as_caller):
    service.create_project(ProjectCreate(title="Abuja Bypass"))

    admin_titles = [p.title for p in service.list_projects(as_caller(admin, Role.ADMIN))]
    consultant_titles = [
        p.title for p in service.list_projects(as_caller(consultant, Role.CONSULTANT))
    ]
    contractor_titles = [
        p.title for p in service.list_projects(as_caller(contractor, Role.CONTRACTOR))
    ]

    assert admin_titles == ["Abuja Bypass", "Lagos Ring Road"]
    assert consultant_titles == ["Lagos Ring Road"]
    assert contractor_titles == []


def test_admin_routes(client: TestClient, admin, contractor, auth_headers):
    headers = auth_headers(admin, Role.ADMIN)

    created = client.post(
        "/api/projects", json={"title": "Kano Depot", "zone": "NORTH_WEST"}, headers=headers
    )
    assert created.status_code == 201
    project_id = created.json()["id"]

    member = client.post(
        f"/api/projects/{project_id}/members", json={"account_id": contractor.id}, headers=headers
    )
    assert member.status_code == 201
    assert member.json()["role"] == "CONTRACTOR"

    milestone = client.post(
        f"/api/projects/{project_id}/milestones",
        json={"title": "Site clearance", "due_date": "2026-03-01"},
        headers=headers,
    )
    assert milestone.status_code == 201
    assert milestone.json()["due_date"] == "2026-03-01"

    listed = client.get("/api/projects", headers=auth_headers(contractor))
    assert [p["title"] for p in listed.json()] == ["Kano Depot"]


def test_create_project_requires_admin(client: TestClient, consultant, auth_headers):
    response = client.post(
        "/api/projects", json={"title": "Rogue Project"}, headers=auth_headers(consultant)
    )

    assert response.status_code == 403
