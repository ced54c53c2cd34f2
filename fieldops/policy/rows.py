"""Row-level access policy for ordinary (non-elevated) reads.

Models the store's row-level policy as an explicit capability check so core
operations can ask what a caller may read directly before querying.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldops.caller import Caller
from fieldops.db.models import ProjectMember, Role, RoleProfile
from fieldops.exceptions import NotFound, PolicyDenied


class RowPolicy:
    """Capability checks for one caller on the ordinary session.

    Attributes:
        db: Ordinary database session.
        caller: Caller whose entitlements are checked.
    """

    def __init__(self, db: Session, caller: Caller):
        self.db = db
        self.caller = caller

    def visible_project_ids(self) -> list[str] | None:
        """Projects the caller may read directly.

        Returns:
            list[str] | None: Project ids, or None when every project is visible.
        """
        if self.caller.is_unscoped:
            return None
        return list(
            self.db.scalars(
                select(ProjectMember.project_id).where(
                    ProjectMember.account_id == self.caller.account_id
                )
            )
        )

    def membership_role(self, project_id: str) -> Role | None:
        return self.db.scalar(
            select(ProjectMember.role).where(
                ProjectMember.project_id == project_id,
                ProjectMember.account_id == self.caller.account_id,
            )
        )

    def can_view_project(self, project_id: str) -> bool:
        if self.caller.is_unscoped:
            return True
        return self.membership_role(project_id) is not None

    def ensure_project_visible(self, project_id: str) -> None:
        """Raise NotFound if the caller may not see the project.

        Invisible and missing projects are indistinguishable to the caller.
        """
        if not self.can_view_project(project_id):
            raise NotFound("Project not found")

    def can_manage_project(self, project_id: str) -> bool:
        """Admins, and consultants assigned to the project, may manage it."""
        if self.caller.is_admin:
            return True
        return (
            self.caller.role == Role.CONSULTANT
            and self.membership_role(project_id) == Role.CONSULTANT
        )

    def is_contractor_on(self, project_id: str) -> bool:
        return (
            self.caller.role == Role.CONTRACTOR
            and self.membership_role(project_id) == Role.CONTRACTOR
        )

    def read_profile(self, account_id: str) -> RoleProfile | None:
        """Read a profile directly. Only the caller's own row is readable.

        Raises:
            PolicyDenied: If the row belongs to another account.
        """
        if account_id != self.caller.account_id and not self.caller.is_admin:
            raise PolicyDenied(f"profile {account_id} is not readable by {self.caller.account_id}")
        return self.db.get(RoleProfile, account_id)
