"""Pydantic schemas for sections and section notifications."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SectionCreate(BaseModel):
    """Schema for creating a section."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    milestone_ids: list[str] = Field(default_factory=list)


class SectionResponse(BaseModel):
    """A section with the number of contractors currently assigned."""

    id: str
    project_id: str
    name: str
    description: str | None = None
    milestone_ids: list[str] = Field(default_factory=list)
    contractor_count: int = 0


class AssignmentCreate(BaseModel):
    contractor_id: str


class AssignmentResponse(BaseModel):
    id: str
    section_id: str
    contractor_id: str

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    """Schema for sending a section notification."""

    title: str = Field(..., max_length=255)
    message: str = Field(..., max_length=5000)


class NotificationResponse(BaseModel):
    """A sent notification with its fan-out size.

    Attributes:
        recipient_count: Number of delivery rows written at send time.
    """

    id: str
    section_id: str
    section_name: str | None = None
    title: str
    message: str
    recipient_count: int
    created_at: datetime | None = None
