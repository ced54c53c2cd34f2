"""Initial database schema.

Revision ID: 001
Revises:
Create Date: 2026-10-17

Complete schema for FieldOps including:
- Accounts and role profiles
- Projects, members and milestones
- Invitations (one PENDING row per email/role via pending_key)
- Submissions
- Sections, section assignments
- Notifications and per-recipient deliveries
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ("ADMIN", "CONSULTANT", "CONTRACTOR", "STAFF")
ZONES = ("NORTH_WEST", "NORTH_EAST", "NORTH_CENTRAL", "SOUTH_WEST", "SOUTH_EAST", "SOUTH_SOUTH")


def upgrade() -> None:
    """Create all tables."""

    # Accounts table (authentication identity)
    op.create_table(
        "accounts",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True, default=True),
        sa.Column("invitation_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_accounts_invitation_id", "accounts", ["invitation_id"])

    # Role profiles (exactly one per account)
    op.create_table(
        "role_profiles",
        sa.Column("account_id", mysql.CHAR(36), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.Enum(*ROLES, name="role"), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("registration_number", sa.String(100), nullable=True),
        sa.Column("zone", sa.Enum(*ZONES, name="zone"), nullable=True),
        sa.Column("specialization", sa.String(255), nullable=True),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("region", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("account_id"),
    )

    # Projects
    op.create_table(
        "projects",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("zone", sa.Enum(*ZONES, name="zone"), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "project_members",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("project_id", mysql.CHAR(36), nullable=False),
        sa.Column("account_id", mysql.CHAR(36), nullable=False),
        sa.Column("role", sa.Enum(*ROLES, name="role"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "account_id", name="uq_project_member"),
    )
    op.create_index("ix_project_members_account_id", "project_members", ["account_id"])

    op.create_table(
        "milestones",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("project_id", mysql.CHAR(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milestones_project_id", "milestones", ["project_id"])

    # Sections and assignments
    op.create_table(
        "sections",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("project_id", mysql.CHAR(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sections_project_id", "sections", ["project_id"])

    op.create_table(
        "section_assignments",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("section_id", mysql.CHAR(36), nullable=False),
        sa.Column("contractor_id", mysql.CHAR(36), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contractor_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("section_id", "contractor_id", name="uq_section_contractor"),
    )

    # Invitations
    op.create_table(
        "invitations",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("invitee_email", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum(*ROLES, name="role"), nullable=False),
        sa.Column("project_id", mysql.CHAR(36), nullable=True),
        sa.Column("section_id", mysql.CHAR(36), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "accepted", "expired", name="invitationstatus"),
            nullable=False,
        ),
        sa.Column("pending_key", sa.String(300), nullable=True),
        sa.Column("invited_by_id", mysql.CHAR(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("expired_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["invited_by_id"], ["accounts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pending_key"),
    )
    op.create_index("ix_invitations_invitee_email", "invitations", ["invitee_email"])
    op.create_index("ix_invitations_invited_by_id", "invitations", ["invited_by_id"])

    # Submissions
    op.create_table(
        "submissions",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("milestone_id", mysql.CHAR(36), nullable=False),
        sa.Column("contractor_id", mysql.CHAR(36), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING_APPROVAL", "APPROVED", "QUERIED", name="submissionstatus"),
            nullable=False,
        ),
        sa.Column("work_description", sa.Text(), nullable=True),
        sa.Column("query_note", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("decided_by_id", mysql.CHAR(36), nullable=True),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["milestone_id"], ["milestones.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contractor_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["decided_by_id"], ["accounts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submissions_milestone_id", "submissions", ["milestone_id"])
    op.create_index(
        "ix_submissions_status_submitted_at", "submissions", ["status", "submitted_at"]
    )

    # Notifications and fan-out deliveries
    op.create_table(
        "notifications",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("section_id", mysql.CHAR(36), nullable=False),
        sa.Column("author_id", mysql.CHAR(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_author_id", "notifications", ["author_id"])

    op.create_table(
        "notification_deliveries",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("notification_id", mysql.CHAR(36), nullable=False),
        sa.Column("recipient_id", mysql.CHAR(36), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["notification_id"], ["notifications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notification_deliveries_notification_id",
        "notification_deliveries",
        ["notification_id"],
    )
    op.create_index(
        "ix_notification_deliveries_recipient_id", "notification_deliveries", ["recipient_id"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("notification_deliveries")
    op.drop_table("notifications")
    op.drop_table("submissions")
    op.drop_table("invitations")
    op.drop_table("section_assignments")
    op.drop_table("sections")
    op.drop_table("milestones")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("role_profiles")
    op.drop_table("accounts")
