"""Invitation API routes.

Issuing, listing and expiring invitations requires an authenticated caller.
Fetching a pending invitation and accepting it are public: the opaque id in
the acceptance link is the only credential.
"""

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from fieldops.auth.router import set_session_cookie
from fieldops.dependencies import CurrentAdmin, CurrentCaller, DbSession
from fieldops.invitations.schemas import (
    AcceptInvitation,
    AcceptInvitationResponse,
    InvitationCreate,
    InvitationResponse,
    PendingInvitationResponse,
    SweepResponse,
)
from fieldops.invitations.service import InvitationRegistry, get_invitation_registry
from fieldops.provisioning.service import ProvisioningSaga, get_provisioning_saga

router = APIRouter()


def get_registry(db: DbSession) -> InvitationRegistry:
    """Get invitation registry dependency."""
    return get_invitation_registry(db)


def get_saga(db: DbSession) -> ProvisioningSaga:
    """Get provisioning saga dependency."""
    return get_provisioning_saga(db)


@router.post("", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def issue_invitation(
    data: InvitationCreate,
    caller: CurrentCaller,
    registry: Annotated[InvitationRegistry, Depends(get_registry)],
):
    """Issue an invitation and email the acceptance link.

    Args:
        data: Invitee email, role and optional project/section.
        caller: Inviting admin or consultant.
        registry: Invitation registry.

    Returns:
        InvitationResponse: The pending invitation with its acceptance URL.
    """
    invitation = registry.issue(caller, data)
    return registry.to_response(invitation)


@router.get("", response_model=list[InvitationResponse])
async def list_invitations(
    caller: CurrentCaller,
    registry: Annotated[InvitationRegistry, Depends(get_registry)],
):
    """List invitations issued by the caller (all of them for admins)."""
    return [registry.to_response(inv) for inv in registry.list_invitations(caller)]


@router.post("/sweep", response_model=SweepResponse)
async def sweep_invitations(
    _admin: CurrentAdmin,
    registry: Annotated[InvitationRegistry, Depends(get_registry)],
    older_than_days: Annotated[int, Query(ge=1)] = 30,
):
    """Expire pending invitations older than the given number of days."""
    cutoff = datetime.now(UTC) - timedelta(days=older_than_days)
    return SweepResponse(expired=registry.sweep_expired(cutoff))


@router.get("/{invitation_id}", response_model=PendingInvitationResponse)
async def get_pending_invitation(
    invitation_id: str,
    registry: Annotated[InvitationRegistry, Depends(get_registry)],
):
    """Look up a pending invitation for the acceptance page.

    Args:
        invitation_id: Opaque invitation id.
        registry: Invitation registry.

    Returns:
        PendingInvitationResponse: Email, role and project of the invitation.
    """
    invitation = registry.fetch_pending(invitation_id)
    return PendingInvitationResponse(
        id=invitation.id,
        invitee_email=invitation.invitee_email,
        role=invitation.role,
        project_id=invitation.project_id,
    )


@router.post("/{invitation_id}/expire", status_code=status.HTTP_204_NO_CONTENT)
async def expire_invitation(
    invitation_id: str,
    caller: CurrentCaller,
    registry: Annotated[InvitationRegistry, Depends(get_registry)],
):
    """Expire a pending invitation (admin only)."""
    registry.expire(caller, invitation_id)


@router.post(
    "/{invitation_id}/accept",
    response_model=AcceptInvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def accept_invitation(
    invitation_id: str,
    data: AcceptInvitation,
    response: Response,
    saga: Annotated[ProvisioningSaga, Depends(get_saga)],
):
    """Accept an invitation, create the account and log it in.

    Args:
        invitation_id: Opaque invitation id.
        data: Registration data.
        response: FastAPI response object.
        saga: Provisioning saga.

    Returns:
        AcceptInvitationResponse: Session tokens and the role-home route.
    """
    session = saga.accept(invitation_id, data)
    set_session_cookie(response, session)
    return session
