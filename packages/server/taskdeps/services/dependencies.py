"""
Dependency store: edges between tasks of one project.

Handles:
- Edge creation behind the cycle guard, serialised on the two endpoint tasks
- Graph queries (who blocks a task, who it blocks, the whole project)
- Status changes (blocked -> resolved only) and deletion
- Read-time composition of edges with their partner tasks
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskdeps.core.errors import (
    CrossProjectEdge,
    DuplicateEdge,
    InvalidEdge,
    InvalidStatusTransition,
    NotFound,
    storage_errors,
)
from taskdeps.models.dependency import TaskDependency
from taskdeps.models.task import Task
from taskdeps.services.cycle_guard import check_edge
from taskdeps_shared.schemas.common import CycleGuardMode, DependencyStatus, TaskStatus
from taskdeps_shared.schemas.dependencies import DependencyDetails, DependencyListing
from taskdeps_shared.schemas.tasks import TaskSummary

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _lock_tasks(
    session: AsyncSession, task_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, Task]:
    # Row locks in id order so concurrent (A, B) / (B, A) inserts serialise
    result = await session.execute(
        select(Task).where(Task.id.in_(task_ids)).order_by(Task.id).with_for_update()
    )
    return {t.id: t for t in result.scalars().all()}


async def get_dependency_or_404(
    session: AsyncSession, dependency_id: uuid.UUID, *, for_update: bool = False
) -> TaskDependency:
    with storage_errors("get"):
        dep = await session.get(TaskDependency, dependency_id, with_for_update=for_update)
    if dep is None:
        raise NotFound("Dependency not found", dependency_id=dependency_id)
    return dep


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def create_dependency(
    session: AsyncSession,
    task_id: uuid.UUID,
    blocked_by_id: uuid.UUID,
    *,
    mode: Optional[CycleGuardMode] = None,
) -> TaskDependency:
    """Record that ``task_id`` is blocked by ``blocked_by_id``."""
    if task_id == blocked_by_id:
        raise InvalidEdge(task_id=task_id)

    with storage_errors("create"):
        tasks = await _lock_tasks(session, [task_id, blocked_by_id])
        task = tasks.get(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        blocker = tasks.get(blocked_by_id)
        if blocker is None:
            raise NotFound("Blocking task not found", task_id=blocked_by_id)

        if task.project_id != blocker.project_id:
            raise CrossProjectEdge(task_id=task_id, blocked_by_id=blocked_by_id)

        existing = await session.execute(
            select(TaskDependency.id).where(
                TaskDependency.task_id == task_id,
                TaskDependency.blocked_by_id == blocked_by_id,
            )
        )
        if existing.first() is not None:
            raise DuplicateEdge(task_id=task_id, blocked_by_id=blocked_by_id)

        await check_edge(session, task_id, blocked_by_id, task.project_id, mode=mode)

        dep = TaskDependency(
            task_id=task_id,
            blocked_by_id=blocked_by_id,
            status=DependencyStatus.BLOCKED.value,
        )
        session.add(dep)
        try:
            await session.flush()
        except IntegrityError as exc:
            # Lost a race against an identical insert
            raise DuplicateEdge(task_id=task_id, blocked_by_id=blocked_by_id) from exc

    log.info(
        "dependency.created",
        dependency_id=str(dep.id),
        task_id=str(task_id),
        blocked_by_id=str(blocked_by_id),
        project_id=str(task.project_id),
    )
    return dep


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def dependencies_of(session: AsyncSession, task_id: uuid.UUID) -> list[TaskDependency]:
    """Edges where ``task_id`` is the dependent (the tasks blocking it)."""
    with storage_errors("dependencies_of"):
        result = await session.execute(
            select(TaskDependency)
            .where(TaskDependency.task_id == task_id)
            .order_by(TaskDependency.created_at, TaskDependency.id)
        )
        return list(result.scalars().all())


async def dependents_of(session: AsyncSession, task_id: uuid.UUID) -> list[TaskDependency]:
    """Edges where ``task_id`` is the blocker (the tasks waiting on it)."""
    with storage_errors("dependents_of"):
        result = await session.execute(
            select(TaskDependency)
            .where(TaskDependency.blocked_by_id == task_id)
            .order_by(TaskDependency.created_at, TaskDependency.id)
        )
        return list(result.scalars().all())


async def project_edges(session: AsyncSession, project_id: uuid.UUID) -> list[TaskDependency]:
    with storage_errors("project_edges"):
        result = await session.execute(
            select(TaskDependency)
            .join(Task, Task.id == TaskDependency.task_id)
            .where(Task.project_id == project_id)
            .order_by(TaskDependency.created_at, TaskDependency.id)
        )
        return list(result.scalars().all())


async def is_blocked(session: AsyncSession, task_id: uuid.UUID) -> bool:
    with storage_errors("is_blocked"):
        result = await session.execute(
            select(TaskDependency.id).where(
                TaskDependency.task_id == task_id,
                TaskDependency.status == DependencyStatus.BLOCKED.value,
            ).limit(1)
        )
        return result.first() is not None


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def set_dependency_status(
    session: AsyncSession,
    dependency_id: uuid.UUID,
    status: DependencyStatus,
) -> bool:
    """Move an edge to ``status``. Returns False when it was already there."""
    dep = await get_dependency_or_404(session, dependency_id, for_update=True)
    current = DependencyStatus(dep.status)
    if current == status:
        return False
    if current == DependencyStatus.RESOLVED:
        raise InvalidStatusTransition(dependency_id=dependency_id)

    dep.status = status.value
    dep.resolved_at = datetime.now(timezone.utc)
    with storage_errors("set_status"):
        session.add(dep)
        await session.flush()

    log.info("dependency.status_changed", dependency_id=str(dependency_id), status=status.value)
    return True


async def resolve_dependency(session: AsyncSession, dependency_id: uuid.UUID) -> bool:
    return await set_dependency_status(session, dependency_id, DependencyStatus.RESOLVED)


async def delete_dependency(session: AsyncSession, dependency_id: uuid.UUID) -> bool:
    dep = await get_dependency_or_404(session, dependency_id, for_update=True)
    with storage_errors("delete"):
        await session.delete(dep)
        await session.flush()
    log.info("dependency.deleted", dependency_id=str(dependency_id))
    return True


# ---------------------------------------------------------------------------
# Read composition
# ---------------------------------------------------------------------------


def _summary(task: Optional[Task]) -> Optional[TaskSummary]:
    if task is None:
        return None
    return TaskSummary(
        task_id=task.id,
        title=task.title,
        status=TaskStatus(task.status),
        due_date=task.due_date,
    )


def compose_details(dep: TaskDependency, tasks: dict[uuid.UUID, Task]) -> DependencyDetails:
    """Annotate an edge with its endpoints and the derived flags."""
    blocker = tasks.get(dep.blocked_by_id)
    is_resolved = dep.status == DependencyStatus.RESOLVED.value
    return DependencyDetails(
        dependency_id=dep.id,
        task_id=dep.task_id,
        blocked_by_id=dep.blocked_by_id,
        status=DependencyStatus(dep.status),
        created_at=dep.created_at,
        resolved_at=dep.resolved_at,
        dependent_task=_summary(tasks.get(dep.task_id)),
        blocking_task=_summary(blocker),
        is_resolved=is_resolved,
        can_proceed=is_resolved or (blocker is not None and blocker.status == TaskStatus.DONE.value),
    )


async def enrich_dependencies(
    session: AsyncSession, deps: Sequence[TaskDependency]
) -> list[DependencyDetails]:
    if not deps:
        return []
    task_ids = {d.task_id for d in deps} | {d.blocked_by_id for d in deps}
    with storage_errors("enrich"):
        result = await session.execute(select(Task).where(Task.id.in_(task_ids)))
        tasks = {t.id: t for t in result.scalars().all()}
    return [compose_details(d, tasks) for d in deps]


async def dependency_details(session: AsyncSession, dependency_id: uuid.UUID) -> DependencyDetails:
    dep = await get_dependency_or_404(session, dependency_id)
    return (await enrich_dependencies(session, [dep]))[0]


async def list_dependencies(session: AsyncSession, task_id: uuid.UUID) -> DependencyListing:
    """Both directions of a task's edges, annotated for display."""
    blocked_by = await enrich_dependencies(session, await dependencies_of(session, task_id))
    blocks = await enrich_dependencies(session, await dependents_of(session, task_id))
    return DependencyListing(
        blocked_by=blocked_by,
        blocks=blocks,
        is_blocked=any(d.status == DependencyStatus.BLOCKED for d in blocked_by),
    )
