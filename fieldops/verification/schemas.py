"""Pydantic schemas for the verification queue and submission decisions."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fieldops.db.models import SubmissionStatus

QUEUE_ALL_STATUSES = "ALL"


class Decision(str, enum.Enum):
    """Consultant decision on a pending submission."""

    APPROVE = "APPROVE"
    QUERY = "QUERY"


class QueueItem(BaseModel):
    """One row of the verification queue with display names attached.

    Attributes:
        degraded: True when the row came from the minimal fallback read and
            its names are placeholders.
    """

    submission_id: str
    milestone_id: str
    milestone_title: str
    project_id: str | None = None
    project_title: str
    location: str | None = None
    contractor_id: str
    contractor_name: str
    status: SubmissionStatus
    work_description: str | None = None
    query_note: str | None = None
    submitted_at: datetime | None = None
    degraded: bool = False


class DecisionCreate(BaseModel):
    """Schema for deciding a submission."""

    decision: Decision
    note: str | None = Field(None, max_length=2000)


class SubmissionCreate(BaseModel):
    """Schema for filing a submission against a milestone."""

    milestone_id: str
    work_description: str | None = Field(None, max_length=5000)


class SubmissionResponse(BaseModel):
    """Schema for a submission."""

    id: str
    milestone_id: str
    contractor_id: str
    status: SubmissionStatus
    work_description: str | None = None
    query_note: str | None = None
    submitted_at: datetime
    decided_by_id: str | None = None
    decided_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
