"""
In-process task lifecycle events.

The task registry publishes ``task.completed`` right after it persists a
status change to ``done``; the resolution engine is subscribed to it. Handlers
run in subscription order, inside the publisher's session, so the edge updates
commit or roll back together with the status change.

Delivery is at-least-once from the subscriber's point of view: handlers must
be idempotent.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

log = structlog.get_logger()

TASK_COMPLETED = "task.completed"

Handler = Callable[..., Awaitable[Any]]


class LifecycleBus:
    """Synchronous publish/subscribe hub keyed by event type."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: Handler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def handlers(self, event_type: str) -> list[Handler]:
        return list(self._handlers.get(event_type, []))

    async def publish(
        self,
        event_type: str,
        session: AsyncSession,
        **payload: Any,
    ) -> list[Any]:
        """Run every handler for ``event_type`` and return their results.

        A failing handler propagates its exception to the publisher; the
        remaining handlers are not run.
        """
        handlers = self.handlers(event_type)
        log.info("lifecycle.published", event_type=event_type, handlers=len(handlers), **payload)
        results = []
        for handler in handlers:
            results.append(await handler(session, **payload))
        return results


lifecycle_bus = LifecycleBus()
