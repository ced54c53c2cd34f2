"""Verification queue API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from fieldops.db.models import SubmissionStatus
from fieldops.dependencies import CurrentCaller, DbSession
from fieldops.exceptions import ValidationError
from fieldops.verification.schemas import (
    QUEUE_ALL_STATUSES,
    DecisionCreate,
    QueueItem,
    SubmissionCreate,
    SubmissionResponse,
)
from fieldops.verification.service import VerificationService, get_verification_service

router = APIRouter()


def get_service(db: DbSession) -> VerificationService:
    """Get verification service dependency."""
    return get_verification_service(db)


def parse_status(value: str) -> SubmissionStatus | None:
    if value.upper() == QUEUE_ALL_STATUSES:
        return None
    try:
        return SubmissionStatus(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown submission status: {value}")


@router.get("/queue", response_model=list[QueueItem])
async def list_queue(
    caller: CurrentCaller,
    service: Annotated[VerificationService, Depends(get_service)],
    status_filter: Annotated[
        str, Query(alias="status")
    ] = SubmissionStatus.PENDING_APPROVAL.value,
    project_id: str | None = None,
):
    """List submissions awaiting a decision, with display names attached.

    Args:
        caller: Requesting caller.
        service: Verification service.
        status_filter: Submission status, or ALL.
        project_id: Optional project filter.

    Returns:
        list[QueueItem]: Queue rows, newest first.
    """
    return await service.list_queue(caller, parse_status(status_filter), project_id)


@router.post("/submissions/{submission_id}/decision", response_model=SubmissionResponse)
async def decide_submission(
    submission_id: str,
    data: DecisionCreate,
    caller: CurrentCaller,
    service: Annotated[VerificationService, Depends(get_service)],
):
    """Approve or query a pending submission."""
    return service.decide_submission(caller, submission_id, data.decision, data.note)


@router.post(
    "/submissions", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED
)
async def create_submission(
    data: SubmissionCreate,
    caller: CurrentCaller,
    service: Annotated[VerificationService, Depends(get_service)],
):
    """File a submission against a milestone (contractors only)."""
    return service.create_submission(caller, data.milestone_id, data.work_description)
