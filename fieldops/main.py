"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
from fastapi.middleware.cors import CORSMiddleware

from fieldops.config import get_settings
from fieldops.db.database import init_db
from fieldops.exceptions import register_exception_handlers

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    # Startup
    init_db()
    yield
    # Shutdown (cleanup if needed)


app = FastAPI(
    title=settings.app_name,
    description="Invitation-based onboarding and work verification for field projects",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Import and include routers
from fieldops.auth.router import router as auth_router
from fieldops.invitations.router import router as invitations_router
from fieldops.notifications.router import router as notifications_router
from fieldops.projects.router import router as projects_router
from fieldops.verification.router import router as verification_router

# API routes
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(invitations_router, prefix="/api/invitations", tags=["invitations"])
app.include_router(projects_router, prefix="/api/projects", tags=["projects"])
app.include_router(notifications_router, prefix="/api", tags=["notifications"])
app.include_router(verification_router, prefix="/api/verification", tags=["verification"])


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "ok", "app": settings.app_name}
