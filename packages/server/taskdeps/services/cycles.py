"""
Cycle auditor: enumerate the cycles present in a project's dependency graph.

Read-only and lock-free, so it can run next to writers; a cycle deleted
mid-scan may still be reported.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Iterator, Mapping, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.models.dependency import TaskDependency
from taskdeps.services.dependencies import project_edges
from taskdeps.services.describers import describer_for
from taskdeps.services.registry import SqlTaskRegistry
from taskdeps_shared.schemas.common import ItemType
from taskdeps_shared.schemas.dependencies import CycleNode, CycleReport

log = structlog.get_logger()

UNKNOWN_TASK_TITLE = "Unknown Task"

_EXHAUSTED = object()


@dataclass
class _Traversal:
    """DFS state for a single audit run."""

    adj: Mapping[Hashable, Sequence[Hashable]]
    visited: set = field(default_factory=set)
    on_stack: set = field(default_factory=set)
    path: list = field(default_factory=list)
    cycles: list = field(default_factory=list)

    def _enter(self, node: Hashable) -> Iterator[Hashable]:
        self.visited.add(node)
        self.on_stack.add(node)
        self.path.append(node)
        return iter(self.adj.get(node, ()))

    def visit(self, start: Hashable) -> None:
        if start in self.visited:
            return
        frames = [(start, self._enter(start))]
        while frames:
            node, neighbours = frames[-1]
            nxt = next(neighbours, _EXHAUSTED)
            if nxt is _EXHAUSTED:
                frames.pop()
                self.path.pop()
                self.on_stack.discard(node)
            elif nxt in self.on_stack:
                start_idx = self.path.index(nxt)
                self.cycles.append(self.path[start_idx:] + [nxt])
            elif nxt not in self.visited:
                frames.append((nxt, self._enter(nxt)))


def find_cycles(
    adj: Mapping[Hashable, Sequence[Hashable]],
    roots: Iterable[Hashable] | None = None,
) -> list[list]:
    """Return every cycle met by a DFS from each unvisited root.

    Each cycle is closed, e.g. ``[a, b, c, a]``. A fully explored node is
    never expanded again, so cycles only reachable through one are not
    reported twice.
    """
    traversal = _Traversal(adj=adj)
    for root in roots if roots is not None else list(adj):
        traversal.visit(root)
    return traversal.cycles


def build_adjacency(
    task_ids: Iterable[uuid.UUID], edges: Iterable[TaskDependency]
) -> dict[uuid.UUID, list[uuid.UUID]]:
    """``task_id -> [blocked_by_id, ...]``, one entry per task (possibly empty)."""
    adj: dict[uuid.UUID, list[uuid.UUID]] = {task_id: [] for task_id in task_ids}
    for edge in edges:
        adj.setdefault(edge.task_id, []).append(edge.blocked_by_id)
    return adj


async def audit_project_cycles(session: AsyncSession, project_id: uuid.UUID) -> list[CycleReport]:
    registry = SqlTaskRegistry(session)
    tasks = await registry.project_tasks(project_id)
    edges = await project_edges(session, project_id)

    task_ids = [t.id for t in tasks]
    cycles = find_cycles(build_adjacency(task_ids, edges), roots=task_ids)

    describer = describer_for(session, ItemType.TASK)
    titles: dict[uuid.UUID, str] = {}
    reports = []
    for cycle in cycles:
        nodes = []
        for task_id in cycle:
            if task_id not in titles:
                details = await describer.describe(task_id)
                titles[task_id] = details.title if details else UNKNOWN_TASK_TITLE
            nodes.append(CycleNode(task_id=task_id, title=titles[task_id]))
        reports.append(CycleReport(path=nodes, length=len(nodes)))

    log.info(
        "cycle_audit.completed",
        project_id=str(project_id),
        tasks=len(tasks),
        edges=len(edges),
        cycles=len(reports),
    )
    return reports
