"""Section management and notification fan-out.

A notification is addressed to a section and fanned out to every contractor
assigned to it at send time. The assignment snapshot and the inserts happen
in one transaction with the section row locked, so an assignment added
concurrently lands either wholly before or wholly after the send.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldops.caller import Caller
from fieldops.db.models import (
    Milestone,
    Notification,
    NotificationDelivery,
    Project,
    ProjectMember,
    Role,
    Section,
    SectionAssignment,
    SectionMilestone,
)
from fieldops.exceptions import EmptySection, NotFound, PolicyViolation, ValidationError
from fieldops.notifications.schemas import NotificationResponse, SectionResponse
from fieldops.policy.gateway import AccessPolicyGateway, open_gateway
from fieldops.policy.rows import RowPolicy

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[], AbstractContextManager[AccessPolicyGateway]]


class NotificationService:
    """Service class for sections and section notifications.

    Attributes:
        db: Ordinary database session.
        gateway_factory: Opens an access policy gateway on its own session.
    """

    def __init__(self, db: Session, gateway_factory: GatewayFactory = open_gateway):
        self.db = db
        self.gateway_factory = gateway_factory

    def _locked_section(self, caller: Caller, section_id: str) -> Section:
        """Load a section the caller manages, locking its row.

        Raises:
            NotFound: If the section is missing or its project is invisible.
            PolicyViolation: If the caller can see but not manage the project.
        """
        section = self.db.scalar(
            select(Section).where(Section.id == section_id).with_for_update()
        )
        policy = RowPolicy(self.db, caller)
        if section is None or not policy.can_view_project(section.project_id):
            self.db.rollback()
            raise NotFound("Section not found")
        if not policy.can_manage_project(section.project_id):
            self.db.rollback()
            raise PolicyViolation("Only the project's consultants can manage this section")
        return section

    def list_assignable_sections(self, caller: Caller, project_id: str) -> list[SectionResponse]:
        """List a project's sections with their contractor counts.

        A section with no contractors is listed with a count of 0.

        Args:
            caller: Requesting caller.
            project_id: Project UUID.

        Returns:
            list[SectionResponse]: Sections ordered by name.

        Raises:
            NotFound: If the project is not visible to the caller.
        """
        RowPolicy(self.db, caller).ensure_project_visible(project_id)
        sections = self.db.scalars(
            select(Section).where(Section.project_id == project_id).order_by(Section.name)
        ).all()
        if not sections:
            return []

        linked = self._milestone_ids_by_section([section.id for section in sections])
        with self.gateway_factory() as gateway:
            counts = gateway.section_contractor_counts(project_id)

        return [
            SectionResponse(
                id=section.id,
                project_id=section.project_id,
                name=section.name,
                description=section.description,
                milestone_ids=linked.get(section.id, []),
                contractor_count=counts.get(section.id, 0),
            )
            for section in sections
        ]

    def send(self, caller: Caller, section_id: str, title: str, message: str) -> Notification:
        """Send a notification to every contractor assigned to a section.

        Args:
            caller: Authoring consultant or admin.
            section_id: Target section UUID.
            title: Notification title.
            message: Notification body.

        Returns:
            Notification: The persisted notification.

        Raises:
            ValidationError: If title or message is blank.
            NotFound: If the section does not exist.
            PolicyViolation: If the caller does not manage the project.
            EmptySection: If no contractors are assigned right now.
        """
        title = (title or "").strip()
        message = (message or "").strip()
        if not title or not message:
            raise ValidationError("Title and message are required")

        section = self._locked_section(caller, section_id)
        recipients = list(
            self.db.scalars(
                select(SectionAssignment.contractor_id).where(
                    SectionAssignment.section_id == section.id
                )
            )
        )
        if not recipients:
            self.db.rollback()
            raise EmptySection()

        notification = Notification(
            section_id=section.id,
            author_id=caller.account_id,
            title=title,
            message=message,
        )
        try:
            self.db.add(notification)
            self.db.flush()
            self.db.add_all(
                NotificationDelivery(notification_id=notification.id, recipient_id=recipient_id)
                for recipient_id in recipients
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(notification)
        logger.info(
            f"Notification {notification.id} sent to {len(recipients)} contractors "
            f"in section {section_id}"
        )
        return notification

    def list_sent(self, caller: Caller) -> list[NotificationResponse]:
        """Notifications authored by the caller, newest first."""
        rows = self.db.execute(
            select(Notification, Section.name, func.count(NotificationDelivery.id))
            .join(Section, Notification.section_id == Section.id)
            .outerjoin(NotificationDelivery, NotificationDelivery.notification_id == Notification.id)
            .where(Notification.author_id == caller.account_id)
            .group_by(Notification.id, Section.name)
            .order_by(Notification.created_at.desc())
        ).all()
        return [
            NotificationResponse(
                id=notification.id,
                section_id=notification.section_id,
                section_name=section_name,
                title=notification.title,
                message=notification.message,
                recipient_count=recipient_count,
                created_at=notification.created_at,
            )
            for notification, section_name, recipient_count in rows
        ]

    def create_section(
        self,
        caller: Caller,
        project_id: str,
        name: str,
        description: str | None = None,
        milestone_ids: list[str] | None = None,
    ) -> Section:
        """Create a section in a project the caller manages.

        Args:
            caller: Creating consultant or admin.
            project_id: Project UUID.
            name: Section name.
            description: Optional description.
            milestone_ids: Milestones of the same project the section covers.

        Returns:
            Section: The persisted section with its milestone links.

        Raises:
            NotFound: If the project is missing or invisible.
            PolicyViolation: If the caller does not manage the project.
            ValidationError: If the name is blank or a milestone is not in
                the project.
        """
        policy = RowPolicy(self.db, caller)
        if self.db.get(Project, project_id) is None or not policy.can_view_project(project_id):
            raise NotFound("Project not found")
        if not policy.can_manage_project(project_id):
            raise PolicyViolation("Only the project's consultants can create sections")
        if not name or not name.strip():
            raise ValidationError("Section name is required")

        wanted = list(dict.fromkeys(milestone_ids or []))
        if wanted:
            known = set(
                self.db.scalars(
                    select(Milestone.id).where(
                        Milestone.project_id == project_id, Milestone.id.in_(wanted)
                    )
                )
            )
            missing = [milestone_id for milestone_id in wanted if milestone_id not in known]
            if missing:
                raise ValidationError(
                    f"Milestones not in this project: {', '.join(missing)}"
                )

        section = Section(project_id=project_id, name=name.strip(), description=description)
        section.milestone_links = [SectionMilestone(milestone_id=m) for m in wanted]
        self.db.add(section)
        self.db.commit()
        self.db.refresh(section)
        logger.info(f"Section {section.id} created in project {project_id}")
        return section

    def _milestone_ids_by_section(self, section_ids: list[str]) -> dict[str, list[str]]:
        rows = self.db.execute(
            select(SectionMilestone.section_id, SectionMilestone.milestone_id).where(
                SectionMilestone.section_id.in_(section_ids)
            )
        ).all()
        linked: dict[str, list[str]] = {}
        for section_id, milestone_id in rows:
            linked.setdefault(section_id, []).append(milestone_id)
        return linked

    def assign_contractor(
        self, caller: Caller, section_id: str, contractor_id: str
    ) -> SectionAssignment:
        """Assign a contractor to a section. Assigning twice is a no-op.

        Raises:
            NotFound: If the section is missing or invisible.
            PolicyViolation: If the caller does not manage the project.
            ValidationError: If the contractor is not attached to the project.
        """
        section = self._locked_section(caller, section_id)
        is_member = self.db.scalar(
            select(ProjectMember.id).where(
                ProjectMember.project_id == section.project_id,
                ProjectMember.account_id == contractor_id,
                ProjectMember.role == Role.CONTRACTOR,
            )
        )
        if not is_member:
            self.db.rollback()
            raise ValidationError("Contractor is not attached to this project")

        existing = self._find_assignment(section_id, contractor_id)
        if existing is not None:
            self.db.commit()
            return existing

        assignment = SectionAssignment(section_id=section_id, contractor_id=contractor_id)
        self.db.add(assignment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._find_assignment(section_id, contractor_id)
        self.db.refresh(assignment)
        return assignment

    def _find_assignment(self, section_id: str, contractor_id: str) -> SectionAssignment | None:
        return self.db.scalar(
            select(SectionAssignment).where(
                SectionAssignment.section_id == section_id,
                SectionAssignment.contractor_id == contractor_id,
            )
        )


def get_notification_service(db: Session) -> NotificationService:
    """Factory function for NotificationService.

    Args:
        db: Database session.

    Returns:
        NotificationService: Notification service instance.
    """
    return NotificationService(db)
