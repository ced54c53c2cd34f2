"""Explicit caller identity threaded through every core operation."""

from dataclasses import dataclass

from fieldops.db.models import UNSCOPED_ROLES, Role


@dataclass(frozen=True)
class Caller:
    """The authenticated account performing an operation.

    Attributes:
        account_id: Account UUID.
        role: Role taken from the account's profile.
    """

    account_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_unscoped(self) -> bool:
        """Whether the caller sees every project regardless of membership."""
        return self.role in UNSCOPED_ROLES
