"""Task model."""

from datetime import date, datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="todo")  # todo | in_progress | done
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
