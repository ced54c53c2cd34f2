"""Caller-facing error taxonomy and the FastAPI handler that renders it.

Every error carries a stable ``kind`` and a human-readable message. Store
details never reach the message.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_INVITATION_MESSAGE = "This invitation is invalid or has already been used."


class CoreError(Exception):
    """Base class for errors surfaced to callers."""

    kind = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(CoreError):
    """Bad input shape, e.g. role/detail mismatch."""

    kind = "validation_error"
    status_code = 422


class WeakPassword(ValidationError):
    kind = "weak_password"


class PasswordMismatch(ValidationError):
    kind = "password_mismatch"


class PolicyViolation(CoreError):
    """An operation refused because of a state or entitlement conflict."""

    kind = "policy_violation"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(CoreError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInvitation(NotFound):
    """Stale, consumed or unknown invitation. Message is always generic."""

    kind = "invalid_invitation"

    def __init__(self, message: str = GENERIC_INVITATION_MESSAGE):
        super().__init__(message)


class DuplicatePending(CoreError):
    kind = "duplicate_pending"
    status_code = status.HTTP_409_CONFLICT


class AlreadyAccepted(CoreError):
    kind = "already_accepted"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "This invitation has already been accepted."):
        super().__init__(message)


class EmptySection(CoreError):
    kind = "empty_section"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "This section has no assigned contractors."):
        super().__init__(message)


class AccountCreationFailed(CoreError):
    kind = "account_creation_failed"
    status_code = status.HTTP_400_BAD_REQUEST


class ProvisioningFailed(CoreError):
    """Provisioning aborted after compensation; safe to retry the acceptance."""

    kind = "provisioning_failed"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryable"] = self.retryable
        return body


class PolicyDenied(Exception):
    """Raised by the row-level policy when a direct read crosses the boundary.

    This is a store-level refusal, not a caller-facing error kind; core
    operations catch it and fall back to a narrower read.
    """


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the core error handler to the FastAPI app."""

    @app.exception_handler(CoreError)
    async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})
