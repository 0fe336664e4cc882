"""Task comment model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Comment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "comments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(nullable=False)
    content: str = Field(nullable=False)
