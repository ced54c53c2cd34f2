"""Project administration service."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldops.caller import Caller
from fieldops.db.models import MEMBER_ROLES, Milestone, Project, ProjectMember, RoleProfile
from fieldops.exceptions import NotFound, PolicyViolation, ValidationError
from fieldops.policy.rows import RowPolicy
from fieldops.projects.schemas import MilestoneCreate, ProjectCreate

logger = logging.getLogger(__name__)


class ProjectService:
    """Service class for project administration."""

    def __init__(self, db: Session):
        """Initialize project service.

        Args:
            db: Database session.
        """
        self.db = db

    def _get_project(self, project_id: str) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFound("Project not found")
        return project

    def create_project(self, data: ProjectCreate) -> Project:
        project = Project(title=data.title.strip(), location=data.location, zone=data.zone)
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Project {project.id} created: {project.title}")
        return project

    def list_projects(self, caller: Caller) -> list[Project]:
        """List the projects visible to the caller.

        Args:
            caller: Requesting caller.

        Returns:
            list[Project]: Projects ordered by title.
        """
        query = select(Project).order_by(Project.title)
        visible = RowPolicy(self.db, caller).visible_project_ids()
        if visible is not None:
            query = query.where(Project.id.in_(visible))
        return list(self.db.scalars(query))

    def add_member(self, project_id: str, account_id: str) -> ProjectMember:
        """Attach a consultant or contractor to a project.

        The membership role is taken from the account's profile.

        Args:
            project_id: Project UUID.
            account_id: Account UUID.

        Returns:
            ProjectMember: The membership row.

        Raises:
            NotFound: If the project or the account's profile does not exist.
            ValidationError: If the account's role cannot hold a membership.
            PolicyViolation: If the account is already a member.
        """
        self._get_project(project_id)
        profile = self.db.get(RoleProfile, account_id)
        if profile is None:
            raise NotFound("Account not found")
        if profile.role not in MEMBER_ROLES:
            raise ValidationError(f"{profile.role.value} accounts are not project members")

        member = ProjectMember(project_id=project_id, account_id=account_id, role=profile.role)
        self.db.add(member)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise PolicyViolation("Account is already a member of this project")
        self.db.refresh(member)
        return member

    def create_milestone(self, project_id: str, data: MilestoneCreate) -> Milestone:
        self._get_project(project_id)
        milestone = Milestone(project_id=project_id, title=data.title.strip(), due_date=data.due_date)
        self.db.add(milestone)
        self.db.commit()
        self.db.refresh(milestone)
        return milestone


def get_project_service(db: Session) -> ProjectService:
    """Factory function for ProjectService.

    Args:
        db: Database session.

    Returns:
        ProjectService: Project service instance.
    """
    return ProjectService(db)
