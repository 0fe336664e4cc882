"""
Collaborator adapters: task registry and project membership.

The dependency core only needs task existence, project ownership and status,
plus a hook when a task becomes ``done``. These adapters provide exactly that
over the ``tasks`` / ``projects`` / ``project_members`` tables.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskdeps.core.errors import NotFound, storage_errors
from taskdeps.core.events import TASK_COMPLETED, LifecycleBus, lifecycle_bus
from taskdeps.models.project import Project, ProjectMember
from taskdeps.models.task import Task
from taskdeps_shared.schemas.common import PROJECT_ADMIN_ROLES, ProjectRole, TaskStatus

log = structlog.get_logger()


class TaskRegistry(Protocol):
    async def task_exists(self, task_id: uuid.UUID) -> Optional[Task]: ...

    async def task_project_id(self, task_id: uuid.UUID) -> uuid.UUID: ...

    async def task_status(self, task_id: uuid.UUID) -> TaskStatus: ...


class MembershipDirectory(Protocol):
    async def is_project_member(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool: ...

    async def is_owner_or_admin(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool: ...


@dataclass
class StatusChange:
    task: Task
    previous_status: TaskStatus
    resolved_count: int = 0


# ---------------------------------------------------------------------------
# Task registry
# ---------------------------------------------------------------------------


class SqlTaskRegistry:
    """Task lookups and the status hook that publishes ``task.completed``."""

    def __init__(self, session: AsyncSession, bus: LifecycleBus = lifecycle_bus):
        self.session = session
        self.bus = bus

    async def task_exists(self, task_id: uuid.UUID) -> Optional[Task]:
        with storage_errors("task_lookup"):
            return await self.session.get(Task, task_id)

    async def get_task_or_404(self, task_id: uuid.UUID) -> Task:
        task = await self.task_exists(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        return task

    async def task_project_id(self, task_id: uuid.UUID) -> uuid.UUID:
        return (await self.get_task_or_404(task_id)).project_id

    async def task_status(self, task_id: uuid.UUID) -> TaskStatus:
        return TaskStatus((await self.get_task_or_404(task_id)).status)

    async def tasks_by_id(self, task_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, Task]:
        if not task_ids:
            return {}
        with storage_errors("task_lookup"):
            result = await self.session.execute(select(Task).where(Task.id.in_(set(task_ids))))
            return {t.id: t for t in result.scalars().all()}

    async def project_tasks(self, project_id: uuid.UUID) -> list[Task]:
        with storage_errors("project_tasks"):
            result = await self.session.execute(
                select(Task).where(Task.project_id == project_id).order_by(Task.created_at, Task.id)
            )
            return list(result.scalars().all())

    async def set_task_status(self, task_id: uuid.UUID, status: TaskStatus) -> StatusChange:
        """Persist a status change; fire ``task.completed`` when it becomes done."""
        task = await self.get_task_or_404(task_id)
        previous = TaskStatus(task.status)

        task.status = status.value
        if status == TaskStatus.DONE:
            if previous != TaskStatus.DONE:
                task.completed_at = datetime.now(timezone.utc)
        else:
            task.completed_at = None  # reopen
        with storage_errors("set_task_status"):
            self.session.add(task)
            await self.session.flush()

        change = StatusChange(task=task, previous_status=previous)
        if status == TaskStatus.DONE and previous != TaskStatus.DONE:
            results = await self.bus.publish(
                TASK_COMPLETED,
                self.session,
                task_id=task.id,
                project_id=task.project_id,
            )
            change.resolved_count = sum(r for r in results if isinstance(r, int))

        log.info(
            "task.status_changed",
            task_id=str(task.id),
            from_status=previous.value,
            to_status=status.value,
            resolved_count=change.resolved_count,
        )
        return change


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


class SqlMembershipDirectory:
    """Project membership checks. The project owner is always a member."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _role(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ProjectRole]:
        with storage_errors("membership"):
            project = await self.session.get(Project, project_id)
            if project is None:
                return None
            if project.owner_id == user_id:
                return ProjectRole.OWNER
            member = await self.session.get(ProjectMember, (project_id, user_id))
        return ProjectRole(member.role) if member else None

    async def is_project_member(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return await self._role(project_id, user_id) is not None

    async def is_owner_or_admin(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return await self._role(project_id, user_id) in PROJECT_ADMIN_ROLES
