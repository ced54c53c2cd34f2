"""SQLAlchemy database models."""

import enum
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [e.value for e in enum_cls]


class Role(str, enum.Enum):
    """Account role enumeration."""

    ADMIN = "ADMIN"
    CONSULTANT = "CONSULTANT"
    CONTRACTOR = "CONTRACTOR"
    STAFF = "STAFF"


class InvitationStatus(str, enum.Enum):
    """Invitation lifecycle status. ACCEPTED and EXPIRED are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class SubmissionStatus(str, enum.Enum):
    """Submission status as stored in the database."""

    PENDING_APPROVAL = "PENDING_APPROVAL"  # Needs consultant action
    APPROVED = "APPROVED"
    QUERIED = "QUERIED"  # Sent back to contractor with a note


class Zone(str, enum.Enum):
    """Geopolitical zones a contractor can operate in."""

    NORTH_WEST = "NORTH_WEST"
    NORTH_EAST = "NORTH_EAST"
    NORTH_CENTRAL = "NORTH_CENTRAL"
    SOUTH_WEST = "SOUTH_WEST"
    SOUTH_EAST = "SOUTH_EAST"
    SOUTH_SOUTH = "SOUTH_SOUTH"


MEMBER_ROLES = (Role.CONSULTANT, Role.CONTRACTOR)
UNSCOPED_ROLES = (Role.ADMIN, Role.STAFF)


class Account(Base):
    """Authentication identity.

    Attributes:
        id: Primary key UUID.
        email: Login email (globally unique).
        password_hash: bcrypt hash.
        is_active: Whether the account may log in.
        invitation_id: Invitation that provisioned this identity, if any.
        created_at: Creation timestamp.
        last_login: Last login timestamp.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    invitation_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    profile: Mapped[Optional["RoleProfile"]] = relationship(
        "RoleProfile", back_populates="account", uselist=False
    )


class RoleProfile(Base):
    """Role profile, exactly one per account.

    Role-specific details are flattened into nullable columns; contractor
    columns are only set for CONTRACTOR and consultant columns only for
    CONSULTANT.
    """

    __tablename__ = "role_profiles"

    account_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[Role] = mapped_column(Enum(Role, values_callable=_enum_values), nullable=False)

    # ContractorDetails
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zone: Mapped[Zone | None] = mapped_column(
        Enum(Zone, values_callable=_enum_values), nullable=True
    )

    # ConsultantDetails
    specialization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    region: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    account: Mapped["Account"] = relationship("Account", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.full_name or self.company_name or ""


class Invitation(Base):
    """Single-use invitation granting one email one account under one role.

    Invitations are never deleted; accepted and expired rows are kept as an
    audit record.

    Attributes:
        id: Opaque, unguessable identifier embedded in the acceptance link.
        invitee_email: Lower-cased email of the invitee.
        role: Role the account will be provisioned under.
        project_id: Optional project the invitee joins on acceptance.
        section_id: Optional section a contractor is assigned to on acceptance.
        status: PENDING, ACCEPTED or EXPIRED.
        pending_key: "email|role" while PENDING, NULL afterwards. Unique, so
            the store itself rejects a second PENDING row for the same pair.
        invited_by_id: Account that issued the invitation.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_invitee_email", "invitee_email"),
        Index("ix_invitations_invited_by_id", "invited_by_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    invitee_email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, values_callable=_enum_values), nullable=False)
    project_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    section_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("sections.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus, values_callable=_enum_values),
        default=InvitationStatus.PENDING,
        nullable=False,
    )
    pending_key: Mapped[str | None] = mapped_column(String(300), unique=True, nullable=True)
    invited_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    project: Mapped[Optional["Project"]] = relationship("Project")
    section: Mapped[Optional["Section"]] = relationship("Section")


class Project(Base):
    """Project model."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    zone: Mapped[Zone | None] = mapped_column(
        Enum(Zone, values_callable=_enum_values), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    members: Mapped[list["ProjectMember"]] = relationship(
        "ProjectMember", back_populates="project", cascade="all, delete-orphan"
    )
    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone", back_populates="project", cascade="all, delete-orphan"
    )
    sections: Mapped[list["Section"]] = relationship(
        "Section", back_populates="project", cascade="all, delete-orphan"
    )


class ProjectMember(Base):
    """Links a consultant or contractor account to a project."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "account_id", name="uq_project_member"),
        Index("ix_project_members_account_id", "account_id"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    project_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[Role] = mapped_column(Enum(Role, values_callable=_enum_values), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    project: Mapped["Project"] = relationship("Project", back_populates="members")


class Milestone(Base):
    """Milestone model, belongs to one project."""

    __tablename__ = "milestones"
    __table_args__ = (Index("ix_milestones_project_id", "project_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    project_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    project: Mapped["Project"] = relationship("Project", back_populates="milestones")
    submissions: Mapped[list["Submission"]] = relationship(
        "Submission", back_populates="milestone", cascade="all, delete-orphan"
    )


class Submission(Base):
    """Work submission from a contractor against a milestone."""

    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_milestone_id", "milestone_id"),
        Index("ix_submissions_status_submitted_at", "status", "submitted_at"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    milestone_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False
    )
    contractor_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, values_callable=_enum_values),
        default=SubmissionStatus.PENDING_APPROVAL,
        nullable=False,
    )
    work_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    query_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    decided_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    milestone: Mapped["Milestone"] = relationship("Milestone", back_populates="submissions")


class Section(Base):
    """Sub-division of a project that contractors are assigned to."""

    __tablename__ = "sections"
    __table_args__ = (Index("ix_sections_project_id", "project_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    project_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    project: Mapped["Project"] = relationship("Project", back_populates="sections")
    assignments: Mapped[list["SectionAssignment"]] = relationship(
        "SectionAssignment", back_populates="section", cascade="all, delete-orphan"
    )
    milestone_links: Mapped[list["SectionMilestone"]] = relationship(
        "SectionMilestone", back_populates="section", cascade="all, delete-orphan"
    )


class SectionMilestone(Base):
    """Links a section to a milestone of the same project."""

    __tablename__ = "section_milestones"
    __table_args__ = (
        UniqueConstraint("section_id", "milestone_id", name="uq_section_milestone"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    section_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    milestone_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False
    )

    section: Mapped["Section"] = relationship("Section", back_populates="milestone_links")


class SectionAssignment(Base):
    """Links a contractor account to a section."""

    __tablename__ = "section_assignments"
    __table_args__ = (
        UniqueConstraint("section_id", "contractor_id", name="uq_section_contractor"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    section_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    contractor_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    section: Mapped["Section"] = relationship("Section", back_populates="assignments")


class Notification(Base):
    """Section-scoped notification authored by a consultant."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_author_id", "author_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    section_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    section: Mapped["Section"] = relationship("Section")
    deliveries: Mapped[list["NotificationDelivery"]] = relationship(
        "NotificationDelivery", back_populates="notification", cascade="all, delete-orphan"
    )


class NotificationDelivery(Base):
    """Fan-out row, one per recipient. Never mutated after insert."""

    __tablename__ = "notification_deliveries"
    __table_args__ = (
        Index("ix_notification_deliveries_notification_id", "notification_id"),
        Index("ix_notification_deliveries_recipient_id", "recipient_id"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    notification_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    notification: Mapped["Notification"] = relationship(
        "Notification", back_populates="deliveries"
    )
