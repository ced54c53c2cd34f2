"""Pydantic schemas for role profiles and their role-specific details."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from fieldops.db.models import Role, Zone


class ContractorDetails(BaseModel):
    """Details required for a CONTRACTOR profile."""

    kind: Literal["contractor"] = "contractor"
    company_name: str = Field(..., min_length=1, max_length=255)
    registration_number: str = Field(..., min_length=1, max_length=100)
    zone: Zone


class ConsultantDetails(BaseModel):
    """Details required for a CONSULTANT profile."""

    kind: Literal["consultant"] = "consultant"
    specialization: str = Field(..., min_length=1, max_length=255)
    department: str = Field(..., min_length=1, max_length=255)
    region: str = Field(..., min_length=1, max_length=255)


RoleDetails = Annotated[ContractorDetails | ConsultantDetails, Field(discriminator="kind")]

DETAILS_FOR_ROLE: dict[Role, type[BaseModel] | None] = {
    Role.CONTRACTOR: ContractorDetails,
    Role.CONSULTANT: ConsultantDetails,
    Role.ADMIN: None,
    Role.STAFF: None,
}


class RoleProfileResponse(BaseModel):
    """A role profile as returned to its owner."""

    account_id: str
    full_name: str
    phone: str | None = None
    role: Role
    details: RoleDetails | None = None
