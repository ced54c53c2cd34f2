"""Authentication utilities for JWT, password hashing and password policy."""

import re
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

from fieldops.config import get_settings
from fieldops.exceptions import PasswordMismatch, WeakPassword

settings = get_settings()

PASSWORD_MIN_LENGTH = 8


class TokenData(BaseModel):
    """Token payload data.

    Attributes:
        account_id: Account UUID.
        role: Role at the time the token was issued.
        email: Account email.
    """

    account_id: str
    role: str | None = None
    email: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password.
        hashed_password: Hashed password to compare against.

    Returns:
        bool: True if password matches, False otherwise.
    """
    password_bytes = plain_password.encode("utf-8")
    hash_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(password_bytes, hash_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password.

    Args:
        password: Plain text password.

    Returns:
        str: Hashed password.
    """
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def check_password_policy(password: str, confirm_password: str) -> None:
    """Validate a new password before anything is written.

    Args:
        password: Submitted password.
        confirm_password: Confirmation, must match exactly.

    Raises:
        PasswordMismatch: If the confirmation differs.
        WeakPassword: If the password is shorter than 8 characters or lacks
            an uppercase letter, a lowercase letter or a digit.
    """
    if password != confirm_password:
        raise PasswordMismatch("Passwords do not match.")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise WeakPassword(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
    if not (
        re.search(r"[A-Z]", password)
        and re.search(r"[a-z]", password)
        and re.search(r"[0-9]", password)
    ):
        raise WeakPassword("Password must contain uppercase, lowercase, and a number.")


def create_access_token(
    account_id: str,
    email: str,
    role: str | None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        account_id: Account UUID.
        email: Account email.
        role: Profile role, if the account has one.
        expires_delta: Optional custom expiration time.

    Returns:
        str: Encoded JWT token.
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": account_id,
        "email": email,
        "role": role,
        "exp": expire,
        "type": "access",
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(
    account_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT refresh token.

    Args:
        account_id: Account UUID.
        expires_delta: Optional custom expiration time.

    Returns:
        str: Encoded JWT token.
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(days=settings.refresh_token_expire_days)

    to_encode = {
        "sub": account_id,
        "exp": expire,
        "type": "refresh",
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> TokenData | None:
    """Decode and validate a JWT access token.

    Args:
        token: JWT token string.

    Returns:
        TokenData | None: Token data if valid, None otherwise.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )

        account_id: str = payload.get("sub")
        email: str = payload.get("email")
        role: str | None = payload.get("role")
        token_type: str = payload.get("type")

        if account_id is None or token_type != "access":
            return None

        return TokenData(account_id=account_id, role=role, email=email)

    except JWTError:
        return None


def decode_refresh_token(token: str) -> str | None:
    """Decode and validate a JWT refresh token.

    Args:
        token: JWT token string.

    Returns:
        str | None: Account UUID if the token is a valid refresh token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != "refresh":
        return None
    return payload.get("sub")
