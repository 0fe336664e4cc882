"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel
from pydantic import UUID4

from .common import TaskStatus


class TaskSummary(BaseModel):
    """Partner task as shown next to a dependency edge."""
    task_id: UUID4
    title: str
    status: TaskStatus
    due_date: Optional[date] = None


class TaskRead(BaseModel):
    id: UUID4
    project_id: UUID4
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Status hook
# ---------------------------------------------------------------------------

class TaskStatusUpdate(BaseModel):
    """Request body for PATCH /tasks/{taskId}/status."""
    status: TaskStatus


class TaskStatusChanged(BaseModel):
    task: TaskRead
    previous_status: TaskStatus
    resolved_count: int = 0
