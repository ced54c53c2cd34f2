"""Section and notification API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from fieldops.dependencies import CurrentCaller, DbSession
from fieldops.notifications.schemas import (
    AssignmentCreate,
    AssignmentResponse,
    NotificationCreate,
    NotificationResponse,
    SectionCreate,
    SectionResponse,
)
from fieldops.notifications.service import NotificationService, get_notification_service

router = APIRouter()


def get_service(db: DbSession) -> NotificationService:
    """Get notification service dependency."""
    return get_notification_service(db)


@router.get("/projects/{project_id}/sections", response_model=list[SectionResponse])
async def list_sections(
    project_id: str,
    caller: CurrentCaller,
    service: Annotated[NotificationService, Depends(get_service)],
):
    """List a project's sections with contractor counts.

    Args:
        project_id: Project UUID.
        caller: Requesting caller.
        service: Notification service.

    Returns:
        list[SectionResponse]: Sections, including ones with no contractors.
    """
    return service.list_assignable_sections(caller, project_id)


@router.post(
    "/projects/{project_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_section(
    project_id: str,
    data: SectionCreate,
    caller: CurrentCaller,
    service: Annotated[NotificationService, Depends(get_service)],
):
    """Create a section in a project."""
    section = service.create_section(
        caller, project_id, data.name, data.description, data.milestone_ids
    )
    return SectionResponse(
        id=section.id,
        project_id=section.project_id,
        name=section.name,
        description=section.description,
        milestone_ids=[link.milestone_id for link in section.milestone_links],
    )


@router.post(
    "/sections/{section_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_contractor(
    section_id: str,
    data: AssignmentCreate,
    caller: CurrentCaller,
    service: Annotated[NotificationService, Depends(get_service)],
):
    """Assign a contractor to a section."""
    return service.assign_contractor(caller, section_id, data.contractor_id)


@router.post(
    "/sections/{section_id}/notifications",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_notification(
    section_id: str,
    data: NotificationCreate,
    caller: CurrentCaller,
    service: Annotated[NotificationService, Depends(get_service)],
):
    """Send a notification to every contractor assigned to a section.

    Args:
        section_id: Section UUID.
        data: Title and message.
        caller: Authoring caller.
        service: Notification service.

    Returns:
        NotificationResponse: The notification and its recipient count.
    """
    notification = service.send(caller, section_id, data.title, data.message)
    return NotificationResponse(
        id=notification.id,
        section_id=notification.section_id,
        section_name=notification.section.name,
        title=notification.title,
        message=notification.message,
        recipient_count=len(notification.deliveries),
        created_at=notification.created_at,
    )


@router.get("/notifications/sent", response_model=list[NotificationResponse])
async def list_sent_notifications(
    caller: CurrentCaller,
    service: Annotated[NotificationService, Depends(get_service)],
):
    """List notifications the caller has sent."""
    return service.list_sent(caller)
