"""Authentication API routes."""

from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from fieldops.auth.schemas import AccountResponse, SessionResponse, TokenRefresh, UserLogin
from fieldops.auth.service import AuthService, get_auth_service
from fieldops.config import get_settings
from fieldops.db.models import RoleProfile
from fieldops.dependencies import CurrentAccount, DbSession

router = APIRouter()
settings = get_settings()


def get_service(db: DbSession) -> AuthService:
    """Get auth service dependency."""
    return get_auth_service(db)


def set_session_cookie(response: Response, session: SessionResponse) -> None:
    """Set the access and refresh token cookies for web clients."""
    response.set_cookie(
        key="access_token",
        value=session.token.access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    response.set_cookie(
        key="refresh_token",
        value=session.token.refresh_token,
        httponly=True,
        samesite="lax",
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path="/",
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    data: UserLogin,
    response: Response,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Log in with email and password.

    Args:
        data: Login credentials.
        response: FastAPI response object.
        service: Auth service.

    Returns:
        SessionResponse: Tokens and the role-home route.

    Raises:
        HTTPException: If credentials are invalid.
    """
    session = service.login(data)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    set_session_cookie(response, session)
    return session


@router.post("/refresh", response_model=SessionResponse)
async def refresh(
    response: Response,
    service: Annotated[AuthService, Depends(get_service)],
    data: TokenRefresh | None = None,
    refresh_token: str | None = Cookie(None),
):
    """Exchange a refresh token for a new token pair.

    The token is read from the request body first, then from the cookie.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    token = data.refresh_token if data is not None else refresh_token
    session = service.refresh(token) if token else None
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    set_session_cookie(response, session)
    return session


@router.post("/logout")
async def logout(response: Response):
    """Clear the session cookies."""
    response.delete_cookie("access_token", path="/")
    response.delete_cookie("refresh_token", path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=AccountResponse)
async def get_me(account: CurrentAccount, db: DbSession):
    """Get the current account with its profile role."""
    profile = db.get(RoleProfile, account.id)
    return AccountResponse(
        id=account.id,
        email=account.email,
        full_name=profile.full_name if profile else None,
        role=profile.role if profile else None,
        created_at=account.created_at,
        last_login=account.last_login,
    )
