"""Pydantic schemas for invitations and acceptance."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from fieldops.auth.schemas import SessionResponse
from fieldops.db.models import Role, Zone


class InvitationCreate(BaseModel):
    """Schema for issuing an invitation."""

    email: EmailStr
    role: Role
    project_id: str | None = None
    section_id: str | None = None


class InvitationResponse(BaseModel):
    """Schema for an invitation as seen by its issuer."""

    id: str
    invitee_email: str
    role: Role
    status: str
    project_id: str | None = None
    section_id: str | None = None
    invited_by_id: str | None = None
    created_at: datetime
    accepted_at: datetime | None = None
    expired_at: datetime | None = None
    acceptance_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PendingInvitationResponse(BaseModel):
    """Public view of a pending invitation, shown on the acceptance page."""

    id: str
    invitee_email: str
    role: Role
    project_id: str | None = None


class AcceptInvitation(BaseModel):
    """Registration data submitted with an acceptance.

    Password strength is checked by the provisioning saga, not here, so a
    weak password surfaces as its own error kind.
    """

    full_name: str = Field(..., min_length=2, max_length=255)
    phone: str | None = Field(None, max_length=50)
    password: str = Field(..., max_length=100)
    confirm_password: str = Field(..., max_length=100)

    # Contractor
    company_name: str | None = Field(None, max_length=255)
    registration_number: str | None = Field(None, max_length=100)
    zone: Zone | None = None

    # Consultant
    specialization: str | None = Field(None, max_length=255)
    department: str | None = Field(None, max_length=255)
    region: str | None = Field(None, max_length=255)


class AcceptInvitationResponse(SessionResponse):
    """Result of a completed acceptance."""

    account_id: str


class SweepResponse(BaseModel):
    expired: int
