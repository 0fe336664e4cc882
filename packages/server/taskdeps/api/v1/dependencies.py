"""
Dependency endpoints, nested under a task.

- POST   /tasks/{task_id}/dependencies                  add "task is blocked by X"
- GET    /tasks/{task_id}/dependencies                  both directions + isBlocked
- PUT    /tasks/{task_id}/dependencies/{dependency_id}  resolve
- DELETE /tasks/{task_id}/dependencies/{dependency_id}  delete (owner/admin)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.auth import (
    AuthenticatedUser,
    get_authenticated_user,
    require_project_admin,
    require_project_member,
)
from taskdeps.core.database import get_session
from taskdeps.core.errors import NotFound
from taskdeps.models.dependency import TaskDependency
from taskdeps.services.dependencies import (
    create_dependency,
    delete_dependency,
    dependency_details,
    get_dependency_or_404,
    list_dependencies,
    resolve_dependency,
)
from taskdeps.services.registry import SqlTaskRegistry
from taskdeps_shared.schemas.dependencies import (
    DependencyAdd,
    DependencyCreated,
    DependencyListing,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _edge_of_task(
    session: AsyncSession, task_id: uuid.UUID, dependency_id: uuid.UUID
) -> TaskDependency:
    dep = await get_dependency_or_404(session, dependency_id)
    if task_id not in (dep.task_id, dep.blocked_by_id):
        raise NotFound("Dependency not found", dependency_id=dependency_id)
    return dep


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/{task_id}/dependencies", response_model=DependencyCreated, status_code=201)
async def add_dependency_endpoint(
    task_id: uuid.UUID,
    body: DependencyAdd,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Add a dependency (task is blocked by blocked_by_id)."""
    project_id = await SqlTaskRegistry(session).task_project_id(task_id)
    await require_project_member(session, project_id, auth)

    dep = await create_dependency(session, task_id, body.blocked_by_id)
    details = await dependency_details(session, dep.id)
    await session.commit()
    return DependencyCreated(dependency=details)


@router.get("/{task_id}/dependencies", response_model=DependencyListing)
async def list_dependencies_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Tasks blocking this one, tasks it blocks, and whether it is blocked."""
    project_id = await SqlTaskRegistry(session).task_project_id(task_id)
    await require_project_member(session, project_id, auth)
    return await list_dependencies(session, task_id)


@router.put("/{task_id}/dependencies/{dependency_id}")
async def resolve_dependency_endpoint(
    task_id: uuid.UUID,
    dependency_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Mark a dependency resolved. Resolving twice is a no-op."""
    project_id = await SqlTaskRegistry(session).task_project_id(task_id)
    await require_project_member(session, project_id, auth)

    await _edge_of_task(session, task_id, dependency_id)
    changed = await resolve_dependency(session, dependency_id)
    await session.commit()
    return {"ok": True, "changed": changed}


@router.delete("/{task_id}/dependencies/{dependency_id}")
async def delete_dependency_endpoint(
    task_id: uuid.UUID,
    dependency_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Remove a dependency. Project owners and admins only."""
    project_id = await SqlTaskRegistry(session).task_project_id(task_id)
    await require_project_admin(session, project_id, auth)

    await _edge_of_task(session, task_id, dependency_id)
    await delete_dependency(session, dependency_id)
    await session.commit()
    return {"ok": True}
