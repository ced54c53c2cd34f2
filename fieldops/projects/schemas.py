"""Pydantic schemas for projects, members and milestones."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fieldops.db.models import Role, Zone


class ProjectCreate(BaseModel):
    """Schema for creating a project."""

    title: str = Field(..., min_length=1, max_length=255)
    location: str | None = Field(None, max_length=255)
    zone: Zone | None = None


class ProjectResponse(BaseModel):
    id: str
    title: str
    location: str | None = None
    zone: Zone | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberCreate(BaseModel):
    account_id: str


class MemberResponse(BaseModel):
    id: str
    project_id: str
    account_id: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class MilestoneCreate(BaseModel):
    """Schema for creating a milestone."""

    title: str = Field(..., min_length=1, max_length=255)
    due_date: date | None = None


class MilestoneResponse(BaseModel):
    id: str
    project_id: str
    title: str
    due_date: date | None = None

    model_config = ConfigDict(from_attributes=True)
