"""Tests for section notification fan-out."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fieldops.db.models import (
    Milestone,
    Notification,
    NotificationDelivery,
    Project,
    Role,
    Section,
    SectionAssignment,
    SectionMilestone,
)
from fieldops.exceptions import EmptySection, NotFound, PolicyViolation, ValidationError
from fieldops.notifications.service import NotificationService


@pytest.fixture
def service(db: Session) -> NotificationService:
    return NotificationService(db)


@pytest.fixture
def consultant_caller(consultant, as_caller):
    return as_caller(consultant, Role.CONSULTANT)


@pytest.fixture
def three_assigned(project, section, attach, make_account):
    crew = [
        make_account(f"crew{i}@fieldops.test", Role.CONTRACTOR, full_name=f"Crew {i}")
        for i in range(3)
    ]
    for account in crew:
        attach(account, project, Role.CONTRACTOR, section=section)
    return crew


def row_counts(db: Session) -> tuple[int, int]:
    return (
        db.scalar(select(func.count(Notification.id))),
        db.scalar(select(func.count(NotificationDelivery.id))),
    )


# --- list_assignable_sections ---


def test_sections_listed_with_counts(
    db, service, consultant_caller, project, section, three_assigned
):
    empty = Section(project_id=project.id, name="A Quiet Span")
    db.add(empty)
    db.commit()

    sections = service.list_assignable_sections(consultant_caller, project.id)

    assert [(s.name, s.contractor_count) for s in sections] == [
        ("A Quiet Span", 0),
        ("North Span", 3),
    ]


def test_sections_of_invisible_project(service, project, make_account, as_caller):
    outsider = make_account("out@fieldops.test", Role.CONSULTANT, full_name="Outsider")

    with pytest.raises(NotFound):
        service.list_assignable_sections(as_caller(outsider, Role.CONSULTANT), project.id)


# --- send ---


class TestSend:
    """Tests for sending a section notification."""

    def test_empty_section_writes_nothing(self, db, service, consultant_caller, section):
        with pytest.raises(EmptySection):
            service.send(consultant_caller, section.id, "Site closed", "No work on Friday")

        assert row_counts(db) == (0, 0)

    def test_fans_out_to_every_assigned_contractor(
        self, db, service, consultant_caller, section, three_assigned
    ):
        notification = service.send(consultant_caller, section.id, "Site closed", "No work Friday")

        assert row_counts(db) == (1, 3)
        recipients = set(
            db.scalars(
                select(NotificationDelivery.recipient_id).where(
                    NotificationDelivery.notification_id == notification.id
                )
            )
        )
        assert recipients == {account.id for account in three_assigned}

        sent = service.list_sent(consultant_caller)
        assert len(sent) == 1
        assert sent[0].recipient_count == 3
        assert sent[0].section_name == "North Span"

    def test_recipients_are_a_snapshot(
        self, db, service, consultant_caller, section, three_assigned
    ):
        service.send(consultant_caller, section.id, "First", "Before the new hire")
        db.query(SectionAssignment).filter_by(contractor_id=three_assigned[0].id).delete()
        db.commit()

        service.send(consultant_caller, section.id, "Second", "After the reshuffle")

        counts = {n.title: n.recipient_count for n in service.list_sent(consultant_caller)}
        assert counts == {"First": 3, "Second": 2}

    def test_blank_title_rejected(self, service, consultant_caller, section, three_assigned):
        with pytest.raises(ValidationError):
            service.send(consultant_caller, section.id, "  ", "Body")

    def test_contractor_cannot_send(self, service, section, three_assigned, as_caller):
        with pytest.raises(PolicyViolation):
            service.send(
                as_caller(three_assigned[0], Role.CONTRACTOR), section.id, "Hi", "From crew"
            )

    def test_unknown_section(self, service, consultant_caller):
        with pytest.raises(NotFound):
            service.send(consultant_caller, "missing", "Hi", "There")

    def test_list_sent_only_shows_own(
        self, service, admin, consultant_caller, section, three_assigned, as_caller
    ):
        service.send(as_caller(admin, Role.ADMIN), section.id, "From admin", "Hello")

        assert service.list_sent(consultant_caller) == []


# --- sections and assignments ---


class TestSections:
    """Tests for section creation and contractor assignment."""

    def test_create_section(self, service, consultant_caller, project):
        section = service.create_section(consultant_caller, project.id, " East Span ", "Bridge")

        assert section.name == "East Span"
        assert section.project_id == project.id
        assert section.milestone_links == []

    def test_create_section_links_milestones(
        self, db, service, consultant_caller, project, milestone
    ):
        second = Milestone(project_id=project.id, title="Deck")
        db.add(second)
        db.commit()

        section = service.create_section(
            consultant_caller,
            project.id,
            "East Span",
            milestone_ids=[milestone.id, second.id, milestone.id],
        )

        linked = set(
            db.scalars(
                select(SectionMilestone.milestone_id).where(
                    SectionMilestone.section_id == section.id
                )
            )
        )
        assert linked == {milestone.id, second.id}

        listed = service.list_assignable_sections(consultant_caller, project.id)
        east = next(s for s in listed if s.name == "East Span")
        assert sorted(east.milestone_ids) == sorted([milestone.id, second.id])

    def test_milestone_from_another_project_rejected(
        self, db, service, consultant_caller, project
    ):
        elsewhere = Project(title="Abuja Bypass")
        db.add(elsewhere)
        db.flush()
        foreign = Milestone(project_id=elsewhere.id, title="Survey")
        db.add(foreign)
        db.commit()

        with pytest.raises(ValidationError):
            service.create_section(
                consultant_caller, project.id, "East Span", milestone_ids=[foreign.id]
            )

        assert db.scalar(select(func.count(Section.id))) == 0

    def test_contractor_cannot_create_section(
        self, service, contractor, project, attach, as_caller
    ):
        attach(contractor, project, Role.CONTRACTOR)

        with pytest.raises(PolicyViolation):
            service.create_section(as_caller(contractor, Role.CONTRACTOR), project.id, "Mine")

    def test_assign_is_idempotent(
        self, db, service, consultant_caller, project, section, contractor, attach
    ):
        attach(contractor, project, Role.CONTRACTOR)

        first = service.assign_contractor(consultant_caller, section.id, contractor.id)
        second = service.assign_contractor(consultant_caller, section.id, contractor.id)

        assert first.id == second.id
        assert db.scalar(select(func.count(SectionAssignment.id))) == 1

    def test_assignee_must_be_project_contractor(
        self, service, consultant_caller, section, contractor
    ):
        with pytest.raises(ValidationError):
            service.assign_contractor(consultant_caller, section.id, contractor.id)


# --- routes ---


def test_send_route_on_empty_section(client: TestClient, consultant, section, auth_headers):
    response = client.post(
        f"/api/sections/{section.id}/notifications",
        json={"title": "Heads up", "message": "Inspection Monday"},
        headers=auth_headers(consultant),
    )

    assert response.status_code == 409
    assert response.json()["error"]["kind"] == "empty_section"


def test_send_and_list_routes(
    client: TestClient, consultant, project, section, three_assigned, auth_headers
):
    headers = auth_headers(consultant)

    sections = client.get(f"/api/projects/{project.id}/sections", headers=headers).json()
    assert sections[0]["contractor_count"] == 3

    response = client.post(
        f"/api/sections/{section.id}/notifications",
        json={"title": "Heads up", "message": "Inspection Monday"},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["recipient_count"] == 3

    sent = client.get("/api/notifications/sent", headers=headers).json()
    assert [(n["title"], n["recipient_count"]) for n in sent] == [("Heads up", 3)]


def test_section_and_assignment_routes(
    client: TestClient, consultant, contractor, project, milestone, attach, auth_headers
):
    attach(contractor, project, Role.CONTRACTOR)
    headers = auth_headers(consultant)

    created = client.post(
        f"/api/projects/{project.id}/sections",
        json={"name": "West Span", "milestone_ids": [milestone.id]},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["milestone_ids"] == [milestone.id]
    section_id = created.json()["id"]

    rejected = client.post(
        f"/api/projects/{project.id}/sections",
        json={"name": "Nowhere Span", "milestone_ids": ["no-such-milestone"]},
        headers=headers,
    )
    assert rejected.status_code == 422

    assigned = client.post(
        f"/api/sections/{section_id}/assignments",
        json={"contractor_id": contractor.id},
        headers=headers,
    )
    assert assigned.status_code == 201
    assert assigned.json()["contractor_id"] == contractor.id
