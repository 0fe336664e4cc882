"""Task dependency edge model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class TaskDependency(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    """``task_id`` is blocked by ``blocked_by_id``."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        CheckConstraint("task_id != blocked_by_id", name="no_self_dependency"),
        UniqueConstraint("task_id", "blocked_by_id", name="uq_task_dependency_pair"),
    )

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    blocked_by_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    status: str = Field(nullable=False, default="blocked")  # blocked | resolved
    resolved_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
