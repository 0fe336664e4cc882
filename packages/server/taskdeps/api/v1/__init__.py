"""
API v1 Router

Dependency endpoints are nested under /tasks/{task_id}; diagnostics under
/projects/{project_id}.
"""

from fastapi import APIRouter
from . import dependencies, projects, tasks

router = APIRouter()

router.include_router(dependencies.router, prefix="/tasks", tags=["Dependencies"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])


@router.get("/", tags=["API"])
async def api_root():
    """Version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/tasks/{task_id}/dependencies",
            "/tasks/{task_id}/dependencies/{dependency_id}",
            "/tasks/{task_id}/status",
            "/projects/{project_id}/dependency-cycles",
        ],
    }
