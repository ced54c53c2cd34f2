"""Access policy gateway: the catalogue of elevated operations.

Each operation runs on the elevated session, answers exactly one question, and
returns only the projection its caller needs. Callers are responsible for
their own entitlement checks before invoking an operation here. None of these
operations are exposed as routes.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldops.db.database import ElevatedSessionLocal
from fieldops.db.models import (
    Account,
    ProjectMember,
    Role,
    RoleProfile,
    Section,
    SectionAssignment,
)
from fieldops.exceptions import PolicyViolation, ValidationError
from fieldops.policy.schemas import DETAILS_FOR_ROLE, ConsultantDetails, ContractorDetails

logger = logging.getLogger(__name__)


class AccessPolicyGateway:
    """Named, narrowly-scoped operations run with elevated privilege.

    Attributes:
        db: Elevated database session.
    """

    def __init__(self, db: Session):
        """Initialize the gateway.

        Args:
            db: Elevated database session (bypasses the row-level policy).
        """
        self.db = db

    def resolve_contractor_names(self, project_id: str) -> dict[str, str]:
        """Display names of every contractor attached to a project.

        Args:
            project_id: Project UUID. The caller must already be entitled to
                view this project.

        Returns:
            dict[str, str]: contractor account id -> display name. Contractors
            without a profile are absent.
        """
        logger.info(f"elevated resolve_contractor_names project={project_id}")
        rows = self.db.execute(
            select(RoleProfile.account_id, RoleProfile.full_name, RoleProfile.company_name)
            .join(ProjectMember, ProjectMember.account_id == RoleProfile.account_id)
            .where(
                ProjectMember.project_id == project_id,
                ProjectMember.role == Role.CONTRACTOR,
            )
        ).all()
        return {
            account_id: full_name or company_name
            for account_id, full_name, company_name in rows
            if full_name or company_name
        }

    def write_role_profile(
        self,
        account_id: str,
        full_name: str,
        phone: str | None,
        role: Role,
        role_specific: ContractorDetails | ConsultantDetails | None,
        project_id: str | None = None,
        section_id: str | None = None,
    ) -> RoleProfile:
        """Write the profile of a newly created account.

        The invitee has no profile to author the row under yet, so the write
        happens here instead of through the ordinary "own row" policy. When
        the invitation was scoped to a project (and, for contractors, a
        section) the membership rows are written in the same transaction.

        Args:
            account_id: Newly created account UUID.
            full_name: Display name.
            phone: Contact phone number.
            role: Role from the invitation.
            role_specific: Details matching the role (None for ADMIN/STAFF).
            project_id: Project to attach the account to.
            section_id: Section to assign a contractor to.

        Returns:
            RoleProfile: The persisted profile.

        Raises:
            ValidationError: If role_specific does not match role.
            PolicyViolation: If the account is missing or already has a profile.
        """
        logger.info(f"elevated write_role_profile account={account_id} role={role.value}")
        _check_details(role, role_specific)
        if not full_name or not full_name.strip():
            raise ValidationError("Full name is required")

        if self.db.get(Account, account_id) is None:
            raise PolicyViolation("Account does not exist")
        if self.db.get(RoleProfile, account_id) is not None:
            raise PolicyViolation("A profile already exists for this account")

        profile = RoleProfile(
            account_id=account_id,
            full_name=full_name.strip(),
            phone=phone,
            role=role,
        )
        if isinstance(role_specific, ContractorDetails):
            profile.company_name = role_specific.company_name
            profile.registration_number = role_specific.registration_number
            profile.zone = role_specific.zone
        elif isinstance(role_specific, ConsultantDetails):
            profile.specialization = role_specific.specialization
            profile.department = role_specific.department
            profile.region = role_specific.region
        self.db.add(profile)

        if project_id and role in (Role.CONSULTANT, Role.CONTRACTOR):
            self.db.add(ProjectMember(project_id=project_id, account_id=account_id, role=role))
            if section_id and role == Role.CONTRACTOR:
                self.db.add(SectionAssignment(section_id=section_id, contractor_id=account_id))

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise PolicyViolation("A profile already exists for this account")
        self.db.refresh(profile)
        return profile

    def section_contractor_counts(self, project_id: str) -> dict[str, int]:
        """Number of assigned contractors per section of a project.

        Args:
            project_id: Project UUID.

        Returns:
            dict[str, int]: section id -> contractor count (0 included).
        """
        logger.info(f"elevated section_contractor_counts project={project_id}")
        rows = self.db.execute(
            select(Section.id, func.count(SectionAssignment.id))
            .outerjoin(SectionAssignment, SectionAssignment.section_id == Section.id)
            .where(Section.project_id == project_id)
            .group_by(Section.id)
        ).all()
        return {section_id: count for section_id, count in rows}

    def discard_orphan_account(self, account_id: str, invitation_id: str) -> bool:
        """Delete an identity left without a profile by a failed provisioning.

        Only an account provisioned from this invitation and still without a
        profile is deleted; anything else is left untouched.

        Args:
            account_id: Account UUID.
            invitation_id: Invitation the account was provisioned from.

        Returns:
            bool: True if the orphan was deleted.
        """
        logger.info(f"elevated discard_orphan_account account={account_id}")
        self.db.rollback()
        account = self.db.get(Account, account_id)
        if account is None:
            return True
        if account.invitation_id != invitation_id:
            logger.error(
                f"Refusing to discard account {account_id}: not provisioned by this invitation"
            )
            return False
        if self.db.get(RoleProfile, account_id) is not None:
            logger.error(f"Refusing to discard account {account_id}: profile exists")
            return False

        self.db.delete(account)
        self.db.commit()
        return True


def _check_details(role: Role, role_specific: object) -> None:
    expected = DETAILS_FOR_ROLE[role]
    if expected is None:
        if role_specific is not None:
            raise ValidationError(f"Role {role.value} does not take role-specific details")
        return
    if not isinstance(role_specific, expected):
        raise ValidationError(f"Role {role.value} requires {expected.__name__}")


@contextmanager
def open_gateway() -> Iterator[AccessPolicyGateway]:
    """Open a gateway on a fresh elevated session.

    Yields:
        AccessPolicyGateway: Gateway bound to its own session.
    """
    db = ElevatedSessionLocal()
    try:
        yield AccessPolicyGateway(db)
    finally:
        db.close()
