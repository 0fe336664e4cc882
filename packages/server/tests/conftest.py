"""
Shared fixtures: in-memory database, seeded projects/tasks, authenticated client.
"""

from __future__ import annotations

import os
import uuid
from typing import Optional

# Set test environment before importing the app
os.environ.setdefault("TD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TD_SECRET_KEY", "test-secret-key-for-testing-only-32chars!")
os.environ.setdefault("TD_LOG_FORMAT", "console")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import taskdeps.models  # noqa: F401
from taskdeps.core.auth import create_jwt
from taskdeps.core.database import get_session
from taskdeps.core.events import LifecycleBus
from taskdeps.models.project import Project, ProjectMember
from taskdeps.models.task import Task
from taskdeps.services import resolution


class Seeder:
    """Insert projects, members and tasks directly through a session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def project(self, owner_id: Optional[uuid.UUID] = None, name: str = "Project") -> Project:
        project = Project(name=name, owner_id=owner_id or uuid.uuid4())
        self.session.add(project)
        await self.session.flush()
        return project

    async def member(self, project: Project, user_id: uuid.UUID, role: str = "member") -> ProjectMember:
        member = ProjectMember(project_id=project.id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def task(self, project: Project, title: str, status: str = "todo") -> Task:
        task = Task(project_id=project.id, title=title, status=status)
        self.session.add(task)
        await self.session.flush()
        return task

    async def tasks(self, project: Project, *titles: str) -> list[Task]:
        return [await self.task(project, title) for title in titles]


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture
def bus() -> LifecycleBus:
    bus = LifecycleBus()
    resolution.register(bus)
    return bus


@pytest.fixture
async def client(session_factory):
    from taskdeps.main import app

    async def _override_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    token, _ = create_jwt(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
