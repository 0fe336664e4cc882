from enum import Enum
from typing import Optional
from pydantic import BaseModel

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

class DependencyStatus(str, Enum):
    BLOCKED = "blocked"
    RESOLVED = "resolved"

class ProjectRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

# Roles allowed to delete dependency edges
PROJECT_ADMIN_ROLES: frozenset["ProjectRole"] = frozenset({ProjectRole.OWNER, ProjectRole.ADMIN})

class ItemType(str, Enum):
    TASK = "task"
    COMMENT = "comment"

class CycleGuardMode(str, Enum):
    DIRECT = "direct"
    TRANSITIVE = "transitive"

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int

class ErrorResponse(BaseModel):
    error: ErrorBody
    details: Optional[dict] = None
