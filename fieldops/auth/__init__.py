"""Authentication module."""

from fieldops.auth.router import router
from fieldops.auth.service import AuthService
from fieldops.auth.utils import (
    check_password_policy,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

__all__ = [
    "router",
    "AuthService",
    "check_password_policy",
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "verify_password",
    "get_password_hash",
]
