"""
Work Suite Task API - Main Application
======================================

FastAPI application serving the task resource that the offline sync
client replays against.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from worksuite.config import settings

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worksuite.core.errors import setup_exception_handlers
from worksuite.db.session import close_db, init_db
from worksuite.schemas.common import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Creates the task table on startup when the SQL repository is in use
    and disposes the engine on shutdown.
    """
    logger.info(
        "Starting Work Suite Task API (repository=%s, environment=%s)",
        settings.TASK_REPOSITORY,
        settings.ENVIRONMENT,
    )

    if settings.auth_disabled:
        logger.warning("Authentication is DISABLED (DEV_AUTH_DISABLED=true); all requests use the dev owner")

    if settings.TASK_REPOSITORY == "sql":
        try:
            await init_db()
        except Exception as e:
            logger.error("Database initialization failed: %s", e)

    yield

    logger.info("Shutting down Work Suite Task API")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Work Suite Task API",
    description="Owner-scoped task resource for the work suite clients.",
    version=API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Resource not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup exception handlers
setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check() -> dict:
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "version": API_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Work Suite Task API",
        "version": API_VERSION,
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from worksuite.api.v1 import tasks
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
