"""Database engine and session configuration.

Two engines are configured: the ordinary one, used by request handlers and
subject to the row-level access policy, and the elevated one, used only by the
access policy gateway.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fieldops.config import get_settings

settings = get_settings()


def build_engine(url: str) -> Engine:
    """Create an engine with pooling and the store timeout applied.

    SQLite doesn't support pool_size/max_overflow.

    Args:
        url: Database connection URL.

    Returns:
        Engine: SQLAlchemy engine.
    """
    engine_kwargs: dict = {
        "echo": settings.debug,
    }
    timeout = settings.store_timeout_seconds

    if not url.startswith("sqlite"):
        engine_kwargs.update(
            {
                "pool_pre_ping": True,
                "pool_size": 5,
                "max_overflow": 10,
                "connect_args": {
                    "connect_timeout": int(timeout),
                    "read_timeout": int(timeout),
                    "write_timeout": int(timeout),
                },
            }
        )
    else:
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}

    return create_engine(url, **engine_kwargs)


engine = build_engine(settings.database_url)
elevated_engine = (
    build_engine(settings.elevated_database_url) if settings.elevated_database_url else engine
)

# Session factories
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
ElevatedSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=elevated_engine,
)


def get_db() -> Generator[Session, None, None]:
    """Get database session.

    Yields:
        Session: SQLAlchemy session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables.

    Creates all tables defined in models if they don't exist.
    In production, use Alembic migrations instead.
    """
    from fieldops.db.models import Base

    # Only create tables in development; use Alembic in production
    if settings.debug:
        Base.metadata.create_all(bind=engine)
