"""
Caller identity and project-scoped authorization for the HTTP layer.

Identity comes from a bearer JWT (issued elsewhere; ``create_jwt`` exists for
local tooling and tests). Authorization is delegated to the membership
directory: members may add, view and resolve dependencies, owners and admins
may delete them. None of this runs inside the dependency core itself.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.config import get_settings
from taskdeps.services.registry import SqlMembershipDirectory

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    settings = get_settings()
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    settings = get_settings()
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """Container for the calling user's id."""

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id


async def get_authenticated_user(
    authorization: Optional[str] = Depends(api_key_header),
) -> AuthenticatedUser:
    """Resolve the caller from ``Authorization: Bearer <jwt>``."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Authentication required")

    token = authorization[7:].strip()
    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    return AuthenticatedUser(user_id)


# ---------------------------------------------------------------------------
# Authorization checks (project membership)
# ---------------------------------------------------------------------------

async def require_project_member(
    session: AsyncSession,
    project_id: uuid.UUID,
    auth: AuthenticatedUser,
) -> None:
    """Any project member (owner included) may proceed."""
    if not await SqlMembershipDirectory(session).is_project_member(project_id, auth.user_id):
        log.info("auth.forbidden", project_id=str(project_id), user_id=str(auth.user_id), need="member")
        raise HTTPException(status_code=403, detail="You do not have access to this project")


async def require_project_admin(
    session: AsyncSession,
    project_id: uuid.UUID,
    auth: AuthenticatedUser,
) -> None:
    """Requires the project owner or an admin member."""
    if not await SqlMembershipDirectory(session).is_owner_or_admin(project_id, auth.user_id):
        log.info("auth.forbidden", project_id=str(project_id), user_id=str(auth.user_id), need="admin")
        raise HTTPException(
            status_code=403, detail="You do not have permission to delete dependencies"
        )
