"""Tests for the invitation registry."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops.db.models import Invitation, InvitationStatus, Role, Section
from fieldops.exceptions import (
    GENERIC_INVITATION_MESSAGE,
    AlreadyAccepted,
    DuplicatePending,
    InvalidInvitation,
    NotFound,
    PolicyViolation,
    ValidationError,
)
from fieldops.invitations.schemas import InvitationCreate
from fieldops.invitations.service import InvitationRegistry


@pytest.fixture
def registry(db: Session) -> InvitationRegistry:
    return InvitationRegistry(db)


@pytest.fixture
def admin_caller(admin, as_caller):
    return as_caller(admin, Role.ADMIN)


@pytest.fixture
def consultant_caller(consultant, as_caller):
    return as_caller(consultant, Role.CONSULTANT)


def invite(email: str, role: Role = Role.CONTRACTOR, **kwargs) -> InvitationCreate:
    return InvitationCreate(email=email, role=role, **kwargs)


# --- issue ---


class TestIssue:
    """Tests for issuing invitations."""

    def test_admin_issues_invitation(self, db, registry, admin_caller, mock_email):
        invitation = registry.issue(admin_caller, invite("New.Person@Example.com", Role.STAFF))

        assert invitation.invitee_email == "new.person@example.com"
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.pending_key == "new.person@example.com|STAFF"
        assert len(invitation.id) >= 40

        mock_email.send_invitation_email.assert_called_once()
        kwargs = mock_email.send_invitation_email.call_args.kwargs
        assert kwargs["to_email"] == "new.person@example.com"
        assert kwargs["inviter_name"] == "Ada Admin"
        assert kwargs["acceptance_url"].endswith(f"/invite/{invitation.id}")

    def test_duplicate_pending_rejected(self, registry, admin_caller):
        registry.issue(admin_caller, invite("dup@example.com"))

        with pytest.raises(DuplicatePending):
            registry.issue(admin_caller, invite("DUP@example.com"))

    def test_same_email_different_role_allowed(self, db, registry, admin_caller):
        registry.issue(admin_caller, invite("two@example.com", Role.CONTRACTOR))
        registry.issue(admin_caller, invite("two@example.com", Role.CONSULTANT))

        pending = db.scalars(
            select(Invitation).where(Invitation.invitee_email == "two@example.com")
        ).all()
        assert len(pending) == 2

    def test_reissue_after_expiry(self, registry, admin_caller):
        first = registry.issue(admin_caller, invite("again@example.com"))
        registry.expire(admin_caller, first.id)

        second = registry.issue(admin_caller, invite("again@example.com"))

        assert second.id != first.id
        assert second.status == InvitationStatus.PENDING

    def test_reissue_after_ttl_lapse(self, db, registry, admin_caller, admin, monkeypatch):
        """A lapsed pending row is expired on re-issue instead of blocking it."""
        lapsed = Invitation(
            id="lapsed-pending",
            invitee_email="late@example.com",
            role=Role.CONTRACTOR,
            status=InvitationStatus.PENDING,
            pending_key="late@example.com|CONTRACTOR",
            invited_by_id=admin.id,
            created_at=datetime.now(UTC) - timedelta(days=30),
        )
        db.add(lapsed)
        db.commit()
        monkeypatch.setattr(registry.settings, "invitation_ttl_days", 7)

        fresh = registry.issue(admin_caller, invite("late@example.com"))

        assert fresh.id != "lapsed-pending"
        assert fresh.pending_key == "late@example.com|CONTRACTOR"
        db.refresh(lapsed)
        assert lapsed.status == InvitationStatus.EXPIRED
        assert lapsed.pending_key is None
        assert lapsed.expired_at is not None

    def test_unlapsed_pending_still_blocks(self, db, registry, admin_caller, monkeypatch):
        monkeypatch.setattr(registry.settings, "invitation_ttl_days", 7)
        registry.issue(admin_caller, invite("recent@example.com"))

        with pytest.raises(DuplicatePending):
            registry.issue(admin_caller, invite("recent@example.com"))

    def test_existing_account_rejected(self, registry, admin_caller, contractor):
        with pytest.raises(PolicyViolation, match="already has an account"):
            registry.issue(admin_caller, invite(contractor.email))

    def test_consultant_invites_contractor_to_own_project(
        self, registry, consultant_caller, project, section
    ):
        invitation = registry.issue(
            consultant_caller,
            invite("crew@example.com", project_id=project.id, section_id=section.id),
        )

        assert invitation.project_id == project.id
        assert invitation.section_id == section.id

    def test_consultant_cannot_invite_consultant(self, registry, consultant_caller, project):
        with pytest.raises(PolicyViolation):
            registry.issue(
                consultant_caller, invite("peer@example.com", Role.CONSULTANT, project_id=project.id)
            )

    def test_consultant_cannot_invite_without_project(self, registry, consultant_caller):
        with pytest.raises(PolicyViolation):
            registry.issue(consultant_caller, invite("crew@example.com"))

    def test_consultant_cannot_invite_to_foreign_project(
        self, registry, project, make_account, as_caller
    ):
        outsider = make_account("out@fieldops.test", Role.CONSULTANT, full_name="Outsider")

        with pytest.raises(PolicyViolation):
            registry.issue(
                as_caller(outsider, Role.CONSULTANT),
                invite("crew@example.com", project_id=project.id),
            )

    def test_contractor_cannot_invite(self, registry, contractor, as_caller):
        with pytest.raises(PolicyViolation):
            registry.issue(as_caller(contractor, Role.CONTRACTOR), invite("x@example.com"))

    def test_section_must_belong_to_project(self, db, registry, admin_caller, project):
        other = Section(project_id=project.id, name="Elsewhere")
        db.add(other)
        db.commit()

        with pytest.raises(ValidationError):
            registry.issue(admin_caller, invite("x@example.com", section_id=other.id))
        with pytest.raises(ValidationError):
            registry.issue(
                admin_caller, invite("x@example.com", project_id="missing", section_id=other.id)
            )

    def test_email_failure_does_not_fail_issue(self, db, registry, admin_caller, mock_email):
        mock_email.send_invitation_email.side_effect = Exception("SMTP down")

        invitation = registry.issue(admin_caller, invite("offline@example.com"))

        assert db.get(Invitation, invitation.id) is not None


# --- fetch_pending ---


class TestFetchPending:
    """Tests for looking up acceptable invitations."""

    def test_returns_pending(self, registry, admin_caller):
        issued = registry.issue(admin_caller, invite("pending@example.com"))

        assert registry.fetch_pending(issued.id).invitee_email == "pending@example.com"

    def test_missing_accepted_and_expired_look_the_same(self, registry, admin_caller):
        accepted = registry.issue(admin_caller, invite("acc@example.com"))
        registry.mark_accepted(accepted.id)
        expired = registry.issue(admin_caller, invite("exp@example.com"))
        registry.expire(admin_caller, expired.id)

        messages = set()
        for invitation_id in ("no-such-id", accepted.id, expired.id):
            with pytest.raises(NotFound) as exc_info:
                registry.fetch_pending(invitation_id)
            messages.add(exc_info.value.message)

        assert messages == {GENERIC_INVITATION_MESSAGE}

    def test_lapsed_invitation_is_expired_lazily(
        self, db, registry, admin, monkeypatch
    ):
        invitation = Invitation(
            id="lapsed-token",
            invitee_email="old@example.com",
            role=Role.CONTRACTOR,
            status=InvitationStatus.PENDING,
            pending_key="old@example.com|CONTRACTOR",
            invited_by_id=admin.id,
            created_at=datetime.now(UTC) - timedelta(days=10),
        )
        db.add(invitation)
        db.commit()
        monkeypatch.setattr(registry.settings, "invitation_ttl_days", 7)

        with pytest.raises(NotFound):
            registry.fetch_pending("lapsed-token")

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED
        assert invitation.pending_key is None

    def test_no_ttl_by_default(self, db, registry, admin):
        db.add(
            Invitation(
                id="ancient-token",
                invitee_email="ancient@example.com",
                role=Role.STAFF,
                status=InvitationStatus.PENDING,
                pending_key="ancient@example.com|STAFF",
                invited_by_id=admin.id,
                created_at=datetime.now(UTC) - timedelta(days=400),
            )
        )
        db.commit()

        assert registry.fetch_pending("ancient-token").id == "ancient-token"


# --- state transitions ---


class TestTransitions:
    """Tests for the one-way PENDING -> ACCEPTED/EXPIRED transitions."""

    def test_mark_accepted_twice_fails(self, db, registry, admin_caller):
        invitation = registry.issue(admin_caller, invite("once@example.com"))

        registry.mark_accepted(invitation.id)
        with pytest.raises(AlreadyAccepted):
            registry.mark_accepted(invitation.id)

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.ACCEPTED
        assert invitation.accepted_at is not None
        assert invitation.pending_key is None

    def test_mark_accepted_on_expired_fails(self, db, registry, admin_caller):
        invitation = registry.issue(admin_caller, invite("late@example.com"))
        registry.expire(admin_caller, invitation.id)

        with pytest.raises(InvalidInvitation):
            registry.mark_accepted(invitation.id)

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED

    def test_mark_accepted_on_missing_fails(self, registry):
        with pytest.raises(InvalidInvitation):
            registry.mark_accepted("no-such-id")

    def test_accepted_cannot_expire(self, db, registry, admin_caller):
        invitation = registry.issue(admin_caller, invite("done@example.com"))
        registry.mark_accepted(invitation.id)

        with pytest.raises(InvalidInvitation):
            registry.expire(admin_caller, invitation.id)

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.ACCEPTED

    def test_only_admin_expires(self, registry, admin_caller, consultant_caller, project):
        invitation = registry.issue(admin_caller, invite("keep@example.com"))

        with pytest.raises(PolicyViolation):
            registry.expire(consultant_caller, invitation.id)

    def test_sweep_expires_only_old_pending(self, db, registry, admin_caller, admin):
        fresh = registry.issue(admin_caller, invite("fresh@example.com"))
        stale = Invitation(
            id="stale-token",
            invitee_email="stale@example.com",
            role=Role.CONTRACTOR,
            status=InvitationStatus.PENDING,
            pending_key="stale@example.com|CONTRACTOR",
            invited_by_id=admin.id,
            created_at=datetime.now(UTC) - timedelta(days=60),
        )
        db.add(stale)
        db.commit()

        expired = registry.sweep_expired(datetime.now(UTC) - timedelta(days=30))

        assert expired == 1
        db.refresh(stale)
        db.refresh(fresh)
        assert stale.status == InvitationStatus.EXPIRED
        assert fresh.status == InvitationStatus.PENDING


# --- list_invitations ---


def test_list_invitations_scoped_to_issuer(registry, admin_caller, consultant_caller, project):
    registry.issue(admin_caller, invite("a@example.com", Role.STAFF))
    registry.issue(consultant_caller, invite("b@example.com", project_id=project.id))

    assert {inv.invitee_email for inv in registry.list_invitations(admin_caller)} == {
        "a@example.com",
        "b@example.com",
    }
    assert [inv.invitee_email for inv in registry.list_invitations(consultant_caller)] == [
        "b@example.com"
    ]
