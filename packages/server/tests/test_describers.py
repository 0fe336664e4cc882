"""
Tests for item describers used to title tasks and comments in reports.
"""

from __future__ import annotations

import uuid

import pytest

from taskdeps.models.comment import Comment
from taskdeps.services.describers import (
    CommentDescriber,
    TaskDescriber,
    describer_for,
)
from taskdeps_shared.schemas.common import ItemType


@pytest.mark.asyncio
async def test_task_describer(session, seed):
    project = await seed.project()
    task = await seed.task(project, "Write release notes")

    details = await TaskDescriber(session).describe(task.id)
    assert details.title == "Write release notes"
    assert details.content == ""


@pytest.mark.asyncio
async def test_comment_describer(session, seed):
    project = await seed.project()
    task = await seed.task(project, "Review")
    comment = Comment(task_id=task.id, user_id=uuid.uuid4(), content="Looks good")
    session.add(comment)
    await session.flush()

    details = await CommentDescriber(session).describe(comment.id)
    assert details.title == "Comment"
    assert details.content == "Looks good"


@pytest.mark.asyncio
async def test_unknown_item_is_none(session):
    assert await TaskDescriber(session).describe(uuid.uuid4()) is None
    assert await CommentDescriber(session).describe(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_registry_lookup(session):
    assert isinstance(describer_for(session, ItemType.TASK), TaskDescriber)
    assert isinstance(describer_for(session, "comment"), CommentDescriber)
    with pytest.raises(ValueError):
        describer_for(session, "attachment")
