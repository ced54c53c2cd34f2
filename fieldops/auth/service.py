"""Authentication service layer: identity creation and sessions."""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from fieldops.auth.schemas import SessionResponse, Token, UserLogin
from fieldops.auth.utils import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from fieldops.db.models import Account, Role, RoleProfile
from fieldops.exceptions import AccountCreationFailed

logger = logging.getLogger(__name__)

HOME_ROUTES = {
    Role.CONTRACTOR: "/dashboard/contractor",
    Role.CONSULTANT: "/dashboard/consultant",
    Role.ADMIN: "/dashboard",
    Role.STAFF: "/dashboard",
}


def home_route_for(role: Role | None) -> str:
    """Role-home view a freshly authenticated account is routed to."""
    return HOME_ROUTES.get(role, "/dashboard")


class AuthService:
    """Service class for identity and session operations."""

    def __init__(self, db: Session):
        """Initialize auth service.

        Args:
            db: Database session.
        """
        self.db = db

    def find_account(self, email: str) -> Account | None:
        return self.db.scalar(select(Account).where(Account.email == email.lower()))

    def create_account(
        self, email: str, password: str, invitation_id: str | None = None
    ) -> Account:
        """Create an authentication identity.

        An identity is created once per email and never re-created. When the
        insert's outcome is unknown (connection lost, store timeout) the
        store is re-read instead of retrying the insert.

        Args:
            email: Login email.
            password: Plain text password (already policy-checked).
            invitation_id: Invitation the identity is provisioned from.

        Returns:
            Account: The created account.

        Raises:
            AccountCreationFailed: If the email is taken or creation failed.
        """
        email = email.lower()
        if self.find_account(email):
            raise AccountCreationFailed("An account with this email already exists.")

        account = Account(
            email=email,
            password_hash=get_password_hash(password),
            is_active=True,
            invitation_id=invitation_id,
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AccountCreationFailed("An account with this email already exists.")
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Account creation outcome unknown for {email}: {e.orig}")
            existing = self.find_account(email)
            if existing is not None and invitation_id and existing.invitation_id == invitation_id:
                return existing
            raise AccountCreationFailed("The account could not be created. Please try again.")

        self.db.refresh(account)
        return account

    def establish_session(self, account: Account, role: Role | None) -> SessionResponse:
        """Issue tokens for an account and record the login.

        Args:
            account: Authenticated account.
            role: Role from the account's profile.

        Returns:
            SessionResponse: Tokens and home route.
        """
        account.last_login = datetime.now(UTC)
        self.db.commit()
        return self._session_for(account, role)

    def _session_for(self, account: Account, role: Role | None) -> SessionResponse:
        role_value = role.value if role else None
        token = Token(
            access_token=create_access_token(account.id, account.email, role_value),
            refresh_token=create_refresh_token(account.id),
        )
        return SessionResponse(token=token, role=role, home_route=home_route_for(role))

    def refresh(self, refresh_token: str) -> SessionResponse | None:
        """Exchange a refresh token for a new token pair.

        The role is re-read from the profile, so a role change takes effect
        on the next refresh.

        Args:
            refresh_token: JWT refresh token.

        Returns:
            SessionResponse | None: New session, or None if the token is
            invalid or the account is gone or disabled.
        """
        account_id = decode_refresh_token(refresh_token)
        if account_id is None:
            return None
        account = self.db.get(Account, account_id)
        if account is None or not account.is_active:
            return None

        profile = self.db.get(RoleProfile, account.id)
        return self._session_for(account, profile.role if profile else None)

    def login(self, data: UserLogin) -> SessionResponse | None:
        """Authenticate by email and password.

        Args:
            data: Login credentials.

        Returns:
            SessionResponse | None: Session if credentials are valid.
        """
        account = self.find_account(data.email)
        if not account or not account.is_active:
            return None
        if not verify_password(data.password, account.password_hash):
            return None

        profile = self.db.get(RoleProfile, account.id)
        return self.establish_session(account, profile.role if profile else None)


def get_auth_service(db: Session) -> AuthService:
    """Factory function for AuthService.

    Args:
        db: Database session.

    Returns:
        AuthService: Auth service instance.
    """
    return AuthService(db)
