"""Invitation registry: issues, validates and expires invitations.

State machine::

    PENDING --accept--> ACCEPTED   (terminal)
    PENDING --expire--> EXPIRED    (terminal)

Every transition is a compare-and-set on the status column, so concurrent
acceptances cannot both win.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldops.caller import Caller
from fieldops.config import get_settings
from fieldops.db.models import Account, Invitation, InvitationStatus, Project, Role, Section
from fieldops.exceptions import (
    GENERIC_INVITATION_MESSAGE,
    AlreadyAccepted,
    DuplicatePending,
    InvalidInvitation,
    NotFound,
    PolicyViolation,
    ValidationError,
)
from fieldops.invitations.schemas import InvitationCreate, InvitationResponse
from fieldops.policy.rows import RowPolicy

logger = logging.getLogger(__name__)


def _pending_key(email: str, role: Role) -> str:
    return f"{email}|{role.value}"


def _as_utc(value: datetime) -> datetime:
    # Handle timezone-naive datetime from database
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class InvitationRegistry:
    """Owns the Invitation entity and its state machine."""

    def __init__(self, db: Session):
        """Initialize the registry.

        Args:
            db: Database session.
        """
        self.db = db
        self.settings = get_settings()

    def acceptance_url(self, invitation: Invitation) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/invite/{invitation.id}"

    def to_response(self, invitation: Invitation) -> InvitationResponse:
        return InvitationResponse(
            id=invitation.id,
            invitee_email=invitation.invitee_email,
            role=invitation.role,
            status=invitation.status.value,
            project_id=invitation.project_id,
            section_id=invitation.section_id,
            invited_by_id=invitation.invited_by_id,
            created_at=invitation.created_at,
            accepted_at=invitation.accepted_at,
            expired_at=invitation.expired_at,
            acceptance_url=(
                self.acceptance_url(invitation)
                if invitation.status == InvitationStatus.PENDING
                else None
            ),
        )

    def _check_issuer(self, caller: Caller, data: InvitationCreate) -> Project | None:
        """Check the caller may issue this invitation and its scope is valid."""
        policy = RowPolicy(self.db, caller)
        if caller.role == Role.CONSULTANT:
            if data.role != Role.CONTRACTOR:
                raise PolicyViolation("Consultants can only invite contractors")
            if not data.project_id or not policy.can_manage_project(data.project_id):
                raise PolicyViolation("Consultants can only invite onto their own projects")
        elif caller.role != Role.ADMIN:
            raise PolicyViolation("You are not allowed to issue invitations")

        if data.section_id and not data.project_id:
            raise ValidationError("A section invitation must name its project")
        if data.section_id and data.role != Role.CONTRACTOR:
            raise ValidationError("Only contractors can be invited onto a section")

        project = None
        if data.project_id:
            project = self.db.get(Project, data.project_id)
            if project is None:
                raise ValidationError("Project does not exist")
        if data.section_id:
            section = self.db.get(Section, data.section_id)
            if section is None or section.project_id != data.project_id:
                raise ValidationError("Section does not belong to the project")
        return project

    def issue(self, caller: Caller, data: InvitationCreate) -> Invitation:
        """Issue an invitation and send the acceptance link.

        Args:
            caller: Inviting admin or consultant.
            data: Invitee email, role and optional scope.

        Returns:
            Invitation: The persisted PENDING invitation.

        Raises:
            PolicyViolation: If the caller may not issue this invitation, or
                the email already has an account.
            ValidationError: If the project/section scope is invalid.
            DuplicatePending: If a PENDING invitation exists for (email, role).
        """
        email = data.email.lower()
        project = self._check_issuer(caller, data)

        if self.db.scalar(select(Account.id).where(Account.email == email)):
            raise PolicyViolation(f"{email} already has an account")

        key = _pending_key(email, data.role)
        existing = self.db.scalar(select(Invitation).where(Invitation.pending_key == key))
        if existing is not None:
            if not self._lapsed(existing):
                raise DuplicatePending(f"A pending invitation already exists for {email}")
            self._transition(existing.id, InvitationStatus.EXPIRED)
            logger.info(f"Lapsed invitation {existing.id[:8]} expired before re-issue")

        invitation = Invitation(
            id=secrets.token_urlsafe(32),
            invitee_email=email,
            role=data.role,
            project_id=data.project_id,
            section_id=data.section_id,
            status=InvitationStatus.PENDING,
            pending_key=key,
            invited_by_id=caller.account_id,
        )
        self.db.add(invitation)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicatePending(f"A pending invitation already exists for {email}")
        self.db.refresh(invitation)
        logger.info(f"Invitation {invitation.id[:8]} issued for {email} as {data.role.value}")

        inviter = RowPolicy(self.db, caller).read_profile(caller.account_id)
        inviter_name = inviter.full_name if inviter else "An administrator"

        try:
            from fieldops.email.service import get_email_service

            email_service = get_email_service()
            email_service.send_invitation_email(
                to_email=email,
                role=data.role.value,
                inviter_name=inviter_name,
                acceptance_url=self.acceptance_url(invitation),
                project_name=project.title if project else None,
            )
        except Exception as e:
            logger.warning(f"Failed to send invitation email to {email}: {e}")

        return invitation

    def fetch_pending(self, invitation_id: str) -> Invitation:
        """Fetch an invitation that can still be accepted.

        Missing, accepted and expired invitations are indistinguishable.

        Args:
            invitation_id: Opaque invitation id.

        Returns:
            Invitation: The PENDING invitation.

        Raises:
            NotFound: If the id does not resolve to a PENDING invitation.
        """
        invitation = self.db.scalar(
            select(Invitation).where(
                Invitation.id == invitation_id,
                Invitation.status == InvitationStatus.PENDING,
            )
        )
        if invitation is None:
            raise NotFound(GENERIC_INVITATION_MESSAGE)

        if self._lapsed(invitation):
            self._transition(invitation_id, InvitationStatus.EXPIRED)
            raise NotFound(GENERIC_INVITATION_MESSAGE)

        return invitation

    def _lapsed(self, invitation: Invitation) -> bool:
        """Whether a PENDING invitation has outlived the configured TTL."""
        ttl_days = self.settings.invitation_ttl_days
        if ttl_days <= 0:
            return False
        return datetime.now(UTC) > _as_utc(invitation.created_at) + timedelta(days=ttl_days)

    def _transition(self, invitation_id: str, target: InvitationStatus) -> bool:
        """Compare-and-set PENDING -> target. Returns whether this call won."""
        now = datetime.now(UTC)
        values: dict = {"status": target, "pending_key": None}
        if target == InvitationStatus.ACCEPTED:
            values["accepted_at"] = now
        else:
            values["expired_at"] = now

        result = self.db.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def _current_status(self, invitation_id: str) -> InvitationStatus | None:
        return self.db.scalar(select(Invitation.status).where(Invitation.id == invitation_id))

    def mark_accepted(self, invitation_id: str) -> None:
        """Flip a PENDING invitation to ACCEPTED.

        Not idempotent: a second call fails, because acceptance is tied to
        one-time account creation.

        Raises:
            AlreadyAccepted: If the invitation was already accepted.
            InvalidInvitation: If it is missing or expired.
        """
        if self._transition(invitation_id, InvitationStatus.ACCEPTED):
            return
        if self._current_status(invitation_id) == InvitationStatus.ACCEPTED:
            raise AlreadyAccepted()
        raise InvalidInvitation()

    def expire(self, caller: Caller, invitation_id: str) -> None:
        """Admin-triggered PENDING -> EXPIRED.

        Raises:
            PolicyViolation: If the caller is not an admin.
            InvalidInvitation: If the invitation is not PENDING.
        """
        if not caller.is_admin:
            raise PolicyViolation("Only administrators can expire invitations")
        if not self._transition(invitation_id, InvitationStatus.EXPIRED):
            raise InvalidInvitation()
        logger.info(f"Invitation {invitation_id[:8]} expired by {caller.account_id}")

    def sweep_expired(self, older_than: datetime) -> int:
        """Expire every PENDING invitation created before a cutoff.

        Args:
            older_than: Cutoff timestamp.

        Returns:
            int: Number of invitations expired.
        """
        cutoff = _as_utc(older_than).astimezone(UTC).replace(tzinfo=None)
        now = datetime.now(UTC)
        result = self.db.execute(
            update(Invitation)
            .where(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.created_at < cutoff,
            )
            .values(status=InvitationStatus.EXPIRED, pending_key=None, expired_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} stale invitations")
        return result.rowcount

    def list_invitations(self, caller: Caller) -> list[Invitation]:
        """Invitations issued by the caller; admins see all of them."""
        query = select(Invitation).order_by(Invitation.created_at.desc())
        if not caller.is_admin:
            query = query.where(Invitation.invited_by_id == caller.account_id)
        return list(self.db.scalars(query))


def get_invitation_registry(db: Session) -> InvitationRegistry:
    """Factory function for InvitationRegistry.

    Args:
        db: Database session.

    Returns:
        InvitationRegistry: Registry instance.
    """
    return InvitationRegistry(db)
