"""Project administration API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from fieldops.dependencies import CurrentAdmin, CurrentCaller, DbSession
from fieldops.projects.schemas import (
    MemberCreate,
    MemberResponse,
    MilestoneCreate,
    MilestoneResponse,
    ProjectCreate,
    ProjectResponse,
)
from fieldops.projects.service import ProjectService, get_project_service

router = APIRouter()


def get_service(db: DbSession) -> ProjectService:
    """Get project service dependency."""
    return get_project_service(db)


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    caller: CurrentCaller,
    service: Annotated[ProjectService, Depends(get_service)],
):
    """List projects visible to the caller."""
    return service.list_projects(caller)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    _admin: CurrentAdmin,
    service: Annotated[ProjectService, Depends(get_service)],
):
    """Create a project (admin only)."""
    return service.create_project(data)


@router.post(
    "/{project_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED
)
async def add_member(
    project_id: str,
    data: MemberCreate,
    _admin: CurrentAdmin,
    service: Annotated[ProjectService, Depends(get_service)],
):
    """Attach a consultant or contractor to a project (admin only).

    Args:
        project_id: Project UUID.
        data: Account to attach.
        _admin: Ensures only admins can access.
        service: Project service.

    Returns:
        MemberResponse: The membership row.
    """
    return service.add_member(project_id, data.account_id)


@router.post(
    "/{project_id}/milestones",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_milestone(
    project_id: str,
    data: MilestoneCreate,
    _admin: CurrentAdmin,
    service: Annotated[ProjectService, Depends(get_service)],
):
    """Create a milestone in a project (admin only)."""
    return service.create_milestone(project_id, data)
