"""Human-readable titles for items referenced by id (tasks, comments)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.errors import storage_errors
from taskdeps.models.comment import Comment
from taskdeps.models.task import Task
from taskdeps_shared.schemas.common import ItemType


@dataclass(frozen=True)
class ItemDetails:
    title: str
    content: str


class ItemDescriber(Protocol):
    async def describe(self, item_id: uuid.UUID) -> Optional[ItemDetails]: ...


class TaskDescriber:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def describe(self, item_id: uuid.UUID) -> Optional[ItemDetails]:
        with storage_errors("describe_task"):
            task = await self.session.get(Task, item_id)
        if task is None:
            return None
        return ItemDetails(title=task.title, content=task.description or "")


class CommentDescriber:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def describe(self, item_id: uuid.UUID) -> Optional[ItemDetails]:
        with storage_errors("describe_comment"):
            comment = await self.session.get(Comment, item_id)
        if comment is None:
            return None
        return ItemDetails(title="Comment", content=comment.content)


DESCRIBERS: dict[ItemType, type] = {
    ItemType.TASK: TaskDescriber,
    ItemType.COMMENT: CommentDescriber,
}


def describer_for(session: AsyncSession, item_type: ItemType) -> ItemDescriber:
    return DESCRIBERS[ItemType(item_type)](session)
