"""
Task status hook.

The task registry owns tasks; this endpoint is the one place the dependency
core observes a status change. Moving a task to ``done`` publishes
``task.completed``, which resolves every edge the task was blocking.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.auth import AuthenticatedUser, get_authenticated_user, require_project_member
from taskdeps.core.database import get_session
from taskdeps.services.registry import SqlTaskRegistry
from taskdeps_shared.schemas.tasks import TaskRead, TaskStatusChanged, TaskStatusUpdate

router = APIRouter()


@router.patch("/{task_id}/status", response_model=TaskStatusChanged)
async def update_task_status_endpoint(
    task_id: uuid.UUID,
    body: TaskStatusUpdate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Change a task's status; completing it auto-resolves what it blocks."""
    registry = SqlTaskRegistry(session)
    project_id = await registry.task_project_id(task_id)
    await require_project_member(session, project_id, auth)

    change = await registry.set_task_status(task_id, body.status)
    await session.commit()
    await session.refresh(change.task)

    return TaskStatusChanged(
        task=TaskRead.model_validate(change.task),
        previous_status=change.previous_status,
        resolved_count=change.resolved_count,
    )
