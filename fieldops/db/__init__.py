"""Database module."""

from fieldops.db.database import ElevatedSessionLocal, SessionLocal, engine, get_db, init_db
from fieldops.db.models import (
    Account,
    Base,
    Invitation,
    Milestone,
    Notification,
    NotificationDelivery,
    Project,
    ProjectMember,
    RoleProfile,
    Section,
    SectionAssignment,
    Submission,
)

__all__ = [
    "SessionLocal",
    "ElevatedSessionLocal",
    "engine",
    "get_db",
    "init_db",
    "Base",
    "Account",
    "RoleProfile",
    "Invitation",
    "Project",
    "ProjectMember",
    "Milestone",
    "Submission",
    "Section",
    "SectionAssignment",
    "Notification",
    "NotificationDelivery",
]
