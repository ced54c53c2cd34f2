"""Pydantic schemas for authentication."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr

from fieldops.db.models import Role


class UserLogin(BaseModel):
    """Schema for login.

    Attributes:
        email: Account email address.
        password: Account password.
    """

    email: EmailStr
    password: str


class Token(BaseModel):
    """Schema for JWT token response.

    Attributes:
        access_token: JWT access token.
        refresh_token: JWT refresh token.
        token_type: Token type (always "bearer").
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Schema for token refresh request.

    Attributes:
        refresh_token: JWT refresh token.
    """

    refresh_token: str


class SessionResponse(BaseModel):
    """An authenticated session plus the role-home view to route to."""

    token: Token
    role: Role | None = None
    home_route: str


class AccountResponse(BaseModel):
    """Schema for the current account."""

    id: str
    email: str
    full_name: str | None = None
    role: Role | None = None
    created_at: datetime
    last_login: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
