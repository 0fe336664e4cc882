"""Project and project membership models."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    name: str = Field(nullable=False)
    description: Optional[str] = None
    owner_id: uuid.UUID = Field(nullable=False, index=True)


class ProjectMember(CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "project_members"

    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: uuid.UUID = Field(primary_key=True)
    role: str = Field(nullable=False, default="member")  # owner | admin | member
