"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Callable, Generator
from unittest.mock import MagicMock, patch

# Set test environment before importing the app. A file-backed SQLite
# database lets the elevated session and thread-pool lookups open their own
# connections to the same data.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="fieldops-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'fieldops.db')}"
os.environ.pop("ELEVATED_DATABASE_URL", None)
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "false"
os.environ["INVITATION_TTL_DAYS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fieldops.auth.utils import create_access_token, get_password_hash
from fieldops.caller import Caller
from fieldops.db.database import SessionLocal, engine
from fieldops.db.models import (
    Account,
    Base,
    Milestone,
    Project,
    ProjectMember,
    Role,
    RoleProfile,
    Section,
    SectionAssignment,
    Zone,
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def mock_email() -> Generator[MagicMock, None, None]:
    """Keep every test off the SMTP server."""
    with patch("fieldops.email.service.get_email_service") as get_service:
        get_service.return_value.send_invitation_email.return_value = True
        get_service.return_value.send_welcome_email.return_value = True
        yield get_service.return_value


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    # Import here to ensure env vars are set
    from fieldops.db.database import get_db
    from fieldops.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_account(
    db: Session,
    email: str,
    role: Role,
    full_name: str | None = "Test User",
    company_name: str | None = None,
    password: str = "Password123",
) -> Account:
    """Create an account and, when full_name is given, its role profile."""
    account = Account(email=email, password_hash=get_password_hash(password), is_active=True)
    db.add(account)
    db.flush()
    if full_name is not None:
        db.add(
            RoleProfile(
                account_id=account.id,
                full_name=full_name,
                role=role,
                company_name=company_name,
                zone=Zone.SOUTH_WEST if role == Role.CONTRACTOR else None,
            )
        )
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def make_account(db: Session) -> Callable[..., Account]:
    """Create accounts on the test session."""

    def _make(email: str, role: Role, **kwargs) -> Account:
        return _create_account(db, email, role, **kwargs)

    return _make


@pytest.fixture
def as_caller() -> Callable[[Account, Role], Caller]:
    def _as_caller(account: Account, role: Role) -> Caller:
        return Caller(account_id=account.id, role=role)

    return _as_caller


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Bearer header for an account."""

    def _headers(account: Account, role: Role | None = None) -> dict[str, str]:
        token = create_access_token(account.id, account.email, role.value if role else None)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin(db: Session) -> Account:
    return _create_account(db, "admin@fieldops.test", Role.ADMIN, full_name="Ada Admin")


@pytest.fixture
def consultant(db: Session) -> Account:
    return _create_account(
        db, "consultant@fieldops.test", Role.CONSULTANT, full_name="Cole Consultant"
    )


@pytest.fixture
def contractor(db: Session) -> Account:
    return _create_account(
        db, "acme@fieldops.test", Role.CONTRACTOR, full_name="Acme Co", company_name="Acme Co"
    )


@pytest.fixture
def project(db: Session, consultant: Account) -> Project:
    """A project with the consultant attached."""
    project = Project(title="Lagos Ring Road", location="Lagos", zone=Zone.SOUTH_WEST)
    db.add(project)
    db.flush()
    db.add(ProjectMember(project_id=project.id, account_id=consultant.id, role=Role.CONSULTANT))
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def milestone(db: Session, project: Project) -> Milestone:
    milestone = Milestone(project_id=project.id, title="Foundations")
    db.add(milestone)
    db.commit()
    db.refresh(milestone)
    return milestone


@pytest.fixture
def section(db: Session, project: Project) -> Section:
    section = Section(project_id=project.id, name="North Span")
    db.add(section)
    db.commit()
    db.refresh(section)
    return section


@pytest.fixture
def attach(db: Session) -> Callable[..., ProjectMember]:
    """Attach an account to a project, optionally assigning it to a section."""

    def _attach(
        account: Account, project: Project, role: Role, section: Section | None = None
    ) -> ProjectMember:
        member = ProjectMember(project_id=project.id, account_id=account.id, role=role)
        db.add(member)
        if section is not None:
            db.add(SectionAssignment(section_id=section.id, contractor_id=account.id))
        db.commit()
        return member

    return _attach
