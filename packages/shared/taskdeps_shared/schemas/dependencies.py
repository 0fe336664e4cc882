"""Dependency graph schemas: edges, read-time views and cycle audit reports."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import UUID4

from .common import DependencyStatus
from .tasks import TaskSummary


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class DependencyAdd(BaseModel):
    """Request body for POST /tasks/{taskId}/dependencies."""
    blocked_by_id: UUID4


class DependencyRead(BaseModel):
    dependency_id: UUID4
    task_id: UUID4
    blocked_by_id: UUID4
    status: DependencyStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None


class DependencyDetails(DependencyRead):
    """An edge joined with both endpoint tasks.

    ``can_proceed`` is derived at read time: a ``blocked`` edge whose blocker
    is already ``done`` can proceed even before auto-resolution has run.
    """
    dependent_task: Optional[TaskSummary] = None
    blocking_task: Optional[TaskSummary] = None
    is_resolved: bool
    can_proceed: bool


class DependencyCreated(BaseModel):
    dependency: DependencyDetails


class DependencyListing(BaseModel):
    """Response for GET /tasks/{taskId}/dependencies."""
    model_config = ConfigDict(populate_by_name=True)

    blocked_by: List[DependencyDetails] = Field(default_factory=list, alias="blockedBy")
    blocks: List[DependencyDetails] = Field(default_factory=list)
    is_blocked: bool = Field(False, alias="isBlocked")


# ---------------------------------------------------------------------------
# Cycle audit
# ---------------------------------------------------------------------------

class CycleNode(BaseModel):
    task_id: UUID4
    title: str


class CycleReport(BaseModel):
    """One cycle, closed: the first node is repeated at the end."""
    path: List[CycleNode]
    length: int
