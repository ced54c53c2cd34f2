"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fieldops.auth.utils import decode_access_token
from fieldops.caller import Caller
from fieldops.db.database import get_db
from fieldops.db.models import Account, Role, RoleProfile

security = HTTPBearer(auto_error=False)


async def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    access_token: str | None = Cookie(None),
) -> Account:
    """Get the current authenticated account from JWT token or cookie.

    Args:
        credentials: HTTP Bearer token credentials.
        db: Database session.
        access_token: Access token from cookie.

    Returns:
        Account: The authenticated account.

    Raises:
        HTTPException: If authentication fails.
    """
    # Try Bearer token first, then fall back to cookie
    token = None
    if credentials is not None:
        token = credentials.credentials
    elif access_token is not None:
        token = access_token

    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account = db.get(Account, token_data.account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )

    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return account


async def get_caller(
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[Session, Depends(get_db)],
) -> Caller:
    """Build the explicit caller for core operations.

    The role is always read from the account's profile, never from the
    token, so a stale token cannot carry an old role.

    Raises:
        HTTPException: If the account has no profile yet.
    """
    profile = db.get(RoleProfile, account.id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account setup is incomplete",
        )
    return Caller(account_id=account.id, role=profile.role)


async def get_current_admin(
    caller: Annotated[Caller, Depends(get_caller)],
) -> Caller:
    """Get the current caller and verify they have admin role.

    Raises:
        HTTPException: If caller is not an admin.
    """
    if caller.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return caller


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db)]
CurrentAccount = Annotated[Account, Depends(get_current_account)]
CurrentCaller = Annotated[Caller, Depends(get_caller)]
CurrentAdmin = Annotated[Caller, Depends(get_current_admin)]
