"""Add section milestone links.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Sections can name the milestones of their project they cover:
- section_milestones: one row per (section, milestone) pair
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the section_milestones table."""
    op.create_table(
        "section_milestones",
        sa.Column("id", mysql.CHAR(36), primary_key=True),
        sa.Column("section_id", mysql.CHAR(36), nullable=False),
        sa.Column("milestone_id", mysql.CHAR(36), nullable=False),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["milestone_id"], ["milestones.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("section_id", "milestone_id", name="uq_section_milestone"),
    )


def downgrade() -> None:
    """Drop the section_milestones table."""
    op.drop_table("section_milestones")
