"""Verification queue assembler and submission decisions.

The queue is assembled in three steps: a joined read of submissions with
their milestone and project, concurrent per-project contractor-name lookups
through the access policy gateway, and a merge that falls back to sentinel
names for anything the lookups did not resolve.

If the joined read is refused, a minimal single-table read is used instead
and every name is a placeholder. Only when that also fails is the queue
empty. Neither case raises to the caller.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fieldops.caller import Caller
from fieldops.config import get_settings
from fieldops.db.models import Milestone, Project, Role, Submission, SubmissionStatus
from fieldops.exceptions import NotFound, PolicyDenied, PolicyViolation, ValidationError
from fieldops.policy.gateway import open_gateway
from fieldops.policy.rows import RowPolicy
from fieldops.resolved import Found, NameLookup, Resolved, Unknown
from fieldops.verification.schemas import Decision, QueueItem

logger = logging.getLogger(__name__)

UNKNOWN_CONTRACTOR = "Unknown Contractor"
UNKNOWN_MILESTONE = "Unknown Milestone"
UNKNOWN_PROJECT = "Unknown Project"

NameResolver = Callable[[str], Mapping[str, str]]


@dataclass
class QueueRow:
    """A submission as read from the store, before names are merged in."""

    submission: Submission
    project_id: str | None
    milestone_title: Resolved = Unknown
    project_title: Resolved = Unknown
    location: str | None = None
    degraded: bool = False


def resolve_contractor_names(project_id: str) -> Mapping[str, str]:
    """Run the gateway lookup on its own elevated session."""
    with open_gateway() as gateway:
        return gateway.resolve_contractor_names(project_id)


class VerificationService:
    """Service class for the verification queue.

    Attributes:
        db: Ordinary database session.
        name_resolver: Per-project contractor name lookup.
    """

    def __init__(self, db: Session, name_resolver: NameResolver = resolve_contractor_names):
        self.db = db
        self.name_resolver = name_resolver
        self.settings = get_settings()

    def _scope(self, caller: Caller) -> tuple[RowPolicy, list[str] | None]:
        policy = RowPolicy(self.db, caller)
        return policy, policy.visible_project_ids()

    def _fetch_joined(self, caller: Caller, status: SubmissionStatus | None) -> list[QueueRow]:
        """Submissions joined with milestone and project, newest first."""
        _, visible = self._scope(caller)
        query = (
            select(Submission, Milestone.title, Project.id, Project.title, Project.location)
            .join(Milestone, Submission.milestone_id == Milestone.id)
            .join(Project, Milestone.project_id == Project.id)
            .order_by(Submission.submitted_at.desc())
        )
        if status is not None:
            query = query.where(Submission.status == status)
        if visible is not None:
            query = query.where(Project.id.in_(visible))
        if caller.role == Role.CONTRACTOR:
            query = query.where(Submission.contractor_id == caller.account_id)

        rows = self.db.execute(query).all()
        return [
            QueueRow(
                submission=submission,
                project_id=project_id,
                milestone_title=Found(milestone_title),
                project_title=Found(project_title),
                location=location,
            )
            for submission, milestone_title, project_id, project_title, location in rows
        ]

    def _milestone_projects(self, visible: list[str] | None) -> dict[str, str]:
        """Map milestone id -> project id, limited to visible projects."""
        query = select(Milestone.id, Milestone.project_id)
        if visible is not None:
            query = query.where(Milestone.project_id.in_(visible))
        return dict(self.db.execute(query).all())

    def _fetch_minimal(self, caller: Caller, status: SubmissionStatus | None) -> list[QueueRow]:
        """Single-table read of submissions with placeholder names.

        Scoped callers need the milestone map to filter rows, so a refused
        milestone read fails this step. Unscoped callers see every submission
        and only lose the project ids.
        """
        _, visible = self._scope(caller)
        if visible is None:
            try:
                milestone_projects = self._milestone_projects(None)
            except (PolicyDenied, SQLAlchemyError) as e:
                logger.warning(f"Milestone read refused, queue rows carry no project: {e}")
                self.db.rollback()
                milestone_projects = {}
        else:
            milestone_projects = self._milestone_projects(visible)

        query = select(Submission).order_by(Submission.submitted_at.desc())
        if status is not None:
            query = query.where(Submission.status == status)
        if visible is not None:
            query = query.where(Submission.milestone_id.in_(list(milestone_projects)))
        if caller.role == Role.CONTRACTOR:
            query = query.where(Submission.contractor_id == caller.account_id)

        return [
            QueueRow(
                submission=submission,
                project_id=milestone_projects.get(submission.milestone_id),
                degraded=True,
            )
            for submission in self.db.scalars(query)
        ]

    def _fetch(self, caller: Caller, status: SubmissionStatus | None) -> list[QueueRow]:
        try:
            return self._fetch_joined(caller, status)
        except (PolicyDenied, SQLAlchemyError) as e:
            logger.warning(f"Joined queue read refused, degrading to minimal read: {e}")
            self.db.rollback()

        try:
            return self._fetch_minimal(caller, status)
        except (PolicyDenied, SQLAlchemyError) as e:
            logger.error(f"Minimal queue read failed, returning empty queue: {e}")
            self.db.rollback()
            return []

    async def _lookup_names(self, project_ids: list[str]) -> dict[str, NameLookup]:
        """Resolve contractor names for each project concurrently.

        A lookup that fails or times out contributes an empty table; the
        others are unaffected.
        """
        semaphore = asyncio.Semaphore(max(1, self.settings.name_lookup_concurrency))
        timeout = self.settings.name_lookup_timeout_seconds

        async def lookup(project_id: str) -> Mapping[str, str]:
            async with semaphore:
                return await asyncio.wait_for(
                    run_in_threadpool(self.name_resolver, project_id), timeout=timeout
                )

        results = await asyncio.gather(
            *(lookup(project_id) for project_id in project_ids), return_exceptions=True
        )

        lookups: dict[str, NameLookup] = {}
        for project_id, result in zip(project_ids, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Contractor name lookup failed for project {project_id}: "
                    f"{type(result).__name__}: {result}"
                )
                lookups[project_id] = NameLookup()
            else:
                lookups[project_id] = NameLookup(result)
        return lookups

    async def list_queue(
        self,
        caller: Caller,
        status: SubmissionStatus | None = SubmissionStatus.PENDING_APPROVAL,
        project_id: str | None = None,
    ) -> list[QueueItem]:
        """Assemble the verification queue for a caller.

        Args:
            caller: Requesting caller; rows are limited to projects it can see.
            status: Submission status to list, or None for every status.
            project_id: Optional project filter, applied after the merge.

        Returns:
            list[QueueItem]: Queue rows, newest submission first.
        """
        rows = await run_in_threadpool(self._fetch, caller, status)

        project_ids = sorted({row.project_id for row in rows if row.project_id and not row.degraded})
        lookups = await self._lookup_names(project_ids) if project_ids else {}

        items = []
        for row in rows:
            submission = row.submission
            names = lookups.get(row.project_id) if row.project_id else None
            contractor = names.resolve(submission.contractor_id) if names else Unknown
            items.append(
                QueueItem(
                    submission_id=submission.id,
                    milestone_id=submission.milestone_id,
                    milestone_title=row.milestone_title.or_else(UNKNOWN_MILESTONE),
                    project_id=row.project_id,
                    project_title=row.project_title.or_else(UNKNOWN_PROJECT),
                    location=row.location,
                    contractor_id=submission.contractor_id,
                    contractor_name=contractor.or_else(UNKNOWN_CONTRACTOR),
                    status=submission.status,
                    work_description=submission.work_description,
                    query_note=submission.query_note,
                    submitted_at=submission.submitted_at,
                    degraded=row.degraded,
                )
            )

        if project_id:
            items = [item for item in items if item.project_id == project_id]
        return items

    def decide_submission(
        self,
        caller: Caller,
        submission_id: str,
        decision: Decision,
        note: str | None = None,
    ) -> Submission:
        """Approve or query a pending submission.

        Args:
            caller: Deciding consultant or admin.
            submission_id: Submission UUID.
            decision: APPROVE or QUERY.
            note: Explanation sent back to the contractor (required for QUERY).

        Returns:
            Submission: The decided submission.

        Raises:
            NotFound: If the submission is missing or not decidable by the caller.
            ValidationError: If a QUERY has no note.
            PolicyViolation: If the submission was already decided.
        """
        submission = self.db.get(Submission, submission_id)
        if submission is None:
            raise NotFound("Submission not found")
        if not RowPolicy(self.db, caller).can_manage_project(submission.milestone.project_id):
            raise NotFound("Submission not found")

        note = (note or "").strip() or None
        if decision == Decision.QUERY and note is None:
            raise ValidationError("A note is required when querying a submission")

        new_status = (
            SubmissionStatus.APPROVED if decision == Decision.APPROVE else SubmissionStatus.QUERIED
        )
        result = self.db.execute(
            update(Submission)
            .where(
                Submission.id == submission_id,
                Submission.status == SubmissionStatus.PENDING_APPROVAL,
            )
            .values(
                status=new_status,
                query_note=note if decision == Decision.QUERY else None,
                decided_by_id=caller.account_id,
                decided_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            raise PolicyViolation("This submission has already been decided")

        self.db.refresh(submission)
        logger.info(f"Submission {submission_id} {new_status.value} by {caller.account_id}")
        return submission

    def create_submission(
        self, caller: Caller, milestone_id: str, work_description: str | None = None
    ) -> Submission:
        """File a submission against a milestone.

        Raises:
            NotFound: If the milestone is missing or invisible to the caller.
            PolicyViolation: If the caller is not a contractor on the project.
        """
        milestone = self.db.get(Milestone, milestone_id)
        policy = RowPolicy(self.db, caller)
        if milestone is None or not policy.can_view_project(milestone.project_id):
            raise NotFound("Milestone not found")
        if not policy.is_contractor_on(milestone.project_id):
            raise PolicyViolation("Only contractors on this project can submit work")

        submission = Submission(
            milestone_id=milestone_id,
            contractor_id=caller.account_id,
            status=SubmissionStatus.PENDING_APPROVAL,
            work_description=work_description,
        )
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        return submission


def get_verification_service(db: Session) -> VerificationService:
    """Factory function for VerificationService.

    Args:
        db: Database session.

    Returns:
        VerificationService: Verification service instance.
    """
    return VerificationService(db)
