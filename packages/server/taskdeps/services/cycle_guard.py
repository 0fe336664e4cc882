"""
Write-path cycle guard for new dependency edges.

Runs inside the same transaction as the insert. In ``direct`` mode only the
exact reverse pair is rejected, so a longer cycle can still be assembled one
edge at a time (the cycle auditor reports those). ``transitive`` mode walks
the project's existing edges and rejects any insert that would close a cycle.
"""

from __future__ import annotations

import uuid
from collections import defaultdict, deque
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskdeps.core.config import get_settings
from taskdeps.core.errors import CycleDetected, InvalidEdge
from taskdeps.models.dependency import TaskDependency
from taskdeps.models.task import Task
from taskdeps_shared.schemas.common import CycleGuardMode

log = structlog.get_logger()


async def reverse_edge_exists(
    session: AsyncSession,
    task_id: uuid.UUID,
    blocked_by_id: uuid.UUID,
) -> bool:
    result = await session.execute(
        select(TaskDependency.id).where(
            TaskDependency.task_id == blocked_by_id,
            TaskDependency.blocked_by_id == task_id,
        )
    )
    return result.first() is not None


async def _project_adjacency(
    session: AsyncSession, project_id: uuid.UUID
) -> dict[uuid.UUID, list[uuid.UUID]]:
    # Build adjacency: task_id -> [blocked_by_id]
    result = await session.execute(
        select(TaskDependency.task_id, TaskDependency.blocked_by_id)
        .join(Task, Task.id == TaskDependency.task_id)
        .where(Task.project_id == project_id)
    )
    adj: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for task_id, blocked_by_id in result.all():
        adj[task_id].append(blocked_by_id)
    return adj


def has_path(
    adj: dict[uuid.UUID, list[uuid.UUID]],
    from_id: uuid.UUID,
    to_id: uuid.UUID,
    max_depth: Optional[int] = None,
) -> bool:
    """BFS along blocked-by edges. Paths longer than ``max_depth`` are not explored."""
    visited: set[uuid.UUID] = set()
    truncated = False
    queue = deque([(from_id, 0)])
    while queue:
        current, depth = queue.popleft()
        if current == to_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        neighbours = adj.get(current, [])
        if max_depth is not None and depth >= max_depth:
            if neighbours:
                truncated = True
            continue
        queue.extend((nxt, depth + 1) for nxt in neighbours)
    if truncated:
        log.warning("cycle_guard.depth_exceeded", from_id=str(from_id), max_depth=max_depth)
    return False


async def check_edge(
    session: AsyncSession,
    task_id: uuid.UUID,
    blocked_by_id: uuid.UUID,
    project_id: uuid.UUID,
    mode: Optional[CycleGuardMode] = None,
    max_depth: Optional[int] = None,
) -> None:
    """Raise if ``task_id`` blocked by ``blocked_by_id`` must not be stored."""
    settings = get_settings()
    mode = mode or settings.cycle_guard_mode
    if max_depth is None:
        max_depth = settings.cycle_guard_max_depth

    if task_id == blocked_by_id:
        raise InvalidEdge(task_id=task_id)

    if await reverse_edge_exists(session, task_id, blocked_by_id):
        raise CycleDetected(
            "Circular dependency detected: direct cycle",
            task_id=task_id,
            blocked_by_id=blocked_by_id,
        )

    if mode == CycleGuardMode.TRANSITIVE:
        # Adding task -> blocked_by closes a cycle iff blocked_by already
        # (transitively) waits on task.
        adj = await _project_adjacency(session, project_id)
        if has_path(adj, blocked_by_id, task_id, max_depth):
            raise CycleDetected(
                "Adding this dependency would create a circular dependency",
                task_id=task_id,
                blocked_by_id=blocked_by_id,
            )
