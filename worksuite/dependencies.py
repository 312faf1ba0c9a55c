"""
Common Dependencies
===================

Shared dependencies used by the task endpoints.
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from worksuite.config import settings
from worksuite.core.errors import AuthenticationError
from worksuite.core.security import owner_id_from_token
from worksuite.db.session import get_session_factory
from worksuite.services.task_repository import (
    InMemoryTaskRepository,
    SqlTaskRepository,
    TaskRepository,
)

logger = logging.getLogger(__name__)

# Security scheme for JWT authentication
security = HTTPBearer(auto_error=False)

# Development owner id (used when DEV_AUTH_DISABLED is on)
DEV_OWNER_ID = "dev-user"

# Process-wide store for TASK_REPOSITORY=memory
_memory_repository = InMemoryTaskRepository()


# =============================================================================
# Owner resolution
# =============================================================================

async def get_current_owner(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """
    Resolve the authenticated owner id from the bearer token.

    Raises 401 if not authenticated or the token is invalid.
    In development with DEV_AUTH_DISABLED=True, returns the dev owner.
    """
    if settings.auth_disabled:
        return DEV_OWNER_ID

    if credentials is None:
        raise AuthenticationError(message="Not authenticated")

    owner_id = owner_id_from_token(credentials.credentials)
    if owner_id is None:
        raise AuthenticationError(message="Invalid or expired token")

    return owner_id


# =============================================================================
# Repository
# =============================================================================

async def get_task_repository() -> AsyncGenerator[TaskRepository, None]:
    """
    Provide the configured task repository.

    For ``sql`` a session is opened per request, committed on success and
    rolled back on error.
    """
    if settings.TASK_REPOSITORY != "sql":
        yield _memory_repository
        return

    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield SqlTaskRepository(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type aliases for endpoint signatures
CurrentOwner = Annotated[str, Depends(get_current_owner)]
Repository = Annotated[TaskRepository, Depends(get_task_repository)]
