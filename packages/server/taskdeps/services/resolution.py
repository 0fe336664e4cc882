"""
Resolution engine: when a task completes, resolve every edge it blocks.

Not recursive: resolving an edge does not re-evaluate whether the dependent
task can now complete. That is computed at read time (``can_proceed``).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.errors import storage_errors
from taskdeps.core.events import TASK_COMPLETED, LifecycleBus
from taskdeps.models.dependency import TaskDependency
from taskdeps_shared.schemas.common import DependencyStatus

log = structlog.get_logger()


async def auto_resolve(session: AsyncSession, task_id: uuid.UUID) -> int:
    """Resolve all still-blocked edges whose blocker is ``task_id``.

    Idempotent: a second call for the same task updates nothing and returns 0.
    """
    stmt = (
        update(TaskDependency)
        .where(
            TaskDependency.blocked_by_id == task_id,
            TaskDependency.status == DependencyStatus.BLOCKED.value,
        )
        .values(
            status=DependencyStatus.RESOLVED.value,
            resolved_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session="evaluate")
    )
    with storage_errors("auto_resolve"):
        result = await session.execute(stmt)
        await session.flush()

    count = result.rowcount or 0
    log.info("dependency.auto_resolved", task_id=str(task_id), count=count)
    return count


async def handle_task_completed(session: AsyncSession, task_id: uuid.UUID, **_: Any) -> int:
    """``task.completed`` subscriber."""
    return await auto_resolve(session, task_id)


def register(bus: LifecycleBus) -> None:
    bus.subscribe(TASK_COMPLETED, handle_task_completed)
