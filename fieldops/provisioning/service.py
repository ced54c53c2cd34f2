"""Account provisioning: turns an accepted invitation into a usable account.

The saga is strictly sequential:

1. the invitation must still be PENDING
2. password policy and role details are validated (no writes yet)
3. the identity is created
4. the role profile is written through the access policy gateway
5. the invitation is marked ACCEPTED
6. a session is established

Once step 3 has created the identity, any failure or interruption before
step 4 commits runs the compensation, which discards the orphaned identity.
The invitation then stays PENDING so the invitee can try again.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from fieldops.auth.service import AuthService
from fieldops.auth.utils import check_password_policy
from fieldops.db.models import Account, Role
from fieldops.exceptions import (
    InvalidInvitation,
    NotFound,
    PolicyViolation,
    ProvisioningFailed,
    ValidationError,
)
from fieldops.invitations.schemas import AcceptInvitation, AcceptInvitationResponse
from fieldops.invitations.service import InvitationRegistry
from fieldops.policy.gateway import AccessPolicyGateway, open_gateway
from fieldops.policy.schemas import ConsultantDetails, ContractorDetails

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[], AbstractContextManager[AccessPolicyGateway]]


def build_role_details(
    role: Role, data: AcceptInvitation
) -> ContractorDetails | ConsultantDetails | None:
    """Select and validate the role-specific payload for a role.

    Args:
        role: Role from the invitation.
        data: Submitted registration data.

    Returns:
        The details model, or None for roles that take no details.

    Raises:
        ValidationError: If a required field is missing or blank.
    """
    try:
        if role == Role.CONTRACTOR:
            return ContractorDetails(
                company_name=(data.company_name or "").strip(),
                registration_number=(data.registration_number or "").strip(),
                zone=data.zone,
            )
        if role == Role.CONSULTANT:
            return ConsultantDetails(
                specialization=(data.specialization or "").strip(),
                department=(data.department or "").strip(),
                region=(data.region or "").strip(),
            )
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ValidationError(f"Missing {role.value.lower()} details: {fields}")
    return None


class ProvisioningSaga:
    """Runs the acceptance saga for one invitation.

    Attributes:
        db: Ordinary database session.
        gateway_factory: Opens an access policy gateway on its own session.
    """

    def __init__(self, db: Session, gateway_factory: GatewayFactory = open_gateway):
        self.db = db
        self.gateway_factory = gateway_factory
        self.registry = InvitationRegistry(db)
        self.auth = AuthService(db)

    def accept(self, invitation_id: str, data: AcceptInvitation) -> AcceptInvitationResponse:
        """Accept an invitation and provision the invitee's account.

        Args:
            invitation_id: Opaque invitation id from the acceptance link.
            data: Registration data.

        Returns:
            AcceptInvitationResponse: Session tokens and the role-home route.

        Raises:
            InvalidInvitation: If the invitation is not PENDING.
            WeakPassword: If the password fails the policy.
            PasswordMismatch: If the confirmation differs.
            ValidationError: If role details are missing.
            AccountCreationFailed: If the identity could not be created.
            ProvisioningFailed: If the profile write failed; the identity was
                discarded and the acceptance can be retried.
        """
        # Step 1
        try:
            invitation = self.registry.fetch_pending(invitation_id)
        except NotFound:
            raise InvalidInvitation()

        # Step 2
        check_password_policy(data.password, data.confirm_password)
        details = build_role_details(invitation.role, data)

        # Step 3
        account = self.auth.create_account(
            invitation.invitee_email, data.password, invitation_id=invitation.id
        )
        account_id = account.id

        # Step 4
        try:
            with self.gateway_factory() as gateway:
                gateway.write_role_profile(
                    account_id=account_id,
                    full_name=data.full_name,
                    phone=data.phone,
                    role=invitation.role,
                    role_specific=details,
                    project_id=invitation.project_id,
                    section_id=invitation.section_id,
                )
        except BaseException as e:
            self._compensate(account_id, invitation_id, e)
            if isinstance(e, (ValidationError, PolicyViolation)) or not isinstance(e, Exception):
                raise
            raise ProvisioningFailed(
                "Your account could not be set up. Please try again.", retryable=True
            ) from e

        # Step 5
        self._mark_accepted(invitation_id)

        # Step 6
        session = self.auth.establish_session(account, invitation.role)
        logger.info(f"Provisioned {invitation.role.value} account {account_id}")

        self._send_welcome(account, data.full_name, invitation.role)

        return AcceptInvitationResponse(**session.model_dump(), account_id=account_id)

    def _compensate(self, account_id: str, invitation_id: str, cause: BaseException) -> None:
        logger.error(
            f"Profile write failed for account {account_id} "
            f"({type(cause).__name__}), discarding identity"
        )
        self.db.rollback()
        try:
            with self.gateway_factory() as gateway:
                discarded = gateway.discard_orphan_account(account_id, invitation_id)
        except Exception as e:
            logger.error(f"Compensation failed for account {account_id}: {e}")
            return
        if not discarded:
            logger.error(f"Orphaned account {account_id} was left in place")

    def _mark_accepted(self, invitation_id: str) -> None:
        # The account is already usable here; the invitation row is audit only.
        try:
            self.registry.mark_accepted(invitation_id)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Invitation {invitation_id[:8]} could not be marked accepted: {e}")

    def _send_welcome(self, account: Account, full_name: str, role: Role) -> None:
        try:
            from fieldops.email.service import get_email_service

            email_service = get_email_service()
            email_service.send_welcome_email(account.email, full_name, role.value)
        except Exception as e:
            logger.warning(f"Failed to send welcome email to {account.email}: {e}")


def get_provisioning_saga(db: Session) -> ProvisioningSaga:
    """Factory function for ProvisioningSaga.

    Args:
        db: Database session.

    Returns:
        ProvisioningSaga: Saga instance.
    """
    return ProvisioningSaga(db)
