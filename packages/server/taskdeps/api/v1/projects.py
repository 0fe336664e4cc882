"""
Project-level dependency diagnostics.

- GET /projects/{project_id}/dependency-cycles  every cycle in the project's graph
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.auth import AuthenticatedUser, get_authenticated_user, require_project_member
from taskdeps.core.database import get_session
from taskdeps.services.cycles import audit_project_cycles
from taskdeps_shared.schemas.dependencies import CycleReport

router = APIRouter()


@router.get("/{project_id}/dependency-cycles", response_model=List[CycleReport])
async def audit_cycles_endpoint(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Report cycles currently present. Read-only; repairs are up to the caller."""
    await require_project_member(session, project_id, auth)
    return await audit_project_cycles(session, project_id)
