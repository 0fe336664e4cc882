"""
Tests for the write-path cycle guard.

Tests cover:
- BFS reachability over blocked-by adjacency (pure)
- Direct mode: self-loops and exact reverse pairs rejected, longer cycles allowed
- Transitive mode: any insert closing a cycle rejected
"""

from __future__ import annotations

import uuid
from collections import defaultdict

import pytest
from structlog.testing import capture_logs

from taskdeps.core.errors import CycleDetected, InvalidEdge
from taskdeps.services.cycle_guard import check_edge, has_path, reverse_edge_exists
from taskdeps.services.dependencies import create_dependency
from taskdeps_shared.schemas.common import CycleGuardMode


# ---------------------------------------------------------------------------
# Unit tests: reachability
# ---------------------------------------------------------------------------


class TestHasPath:
    """Test the BFS used by transitive mode."""

    def test_no_cycle_simple(self):
        """A -> B: adding A -> B should not detect a cycle."""
        adj: dict[str, list[str]] = defaultdict(list)
        assert not has_path(adj, "B", "A")

    def test_direct_cycle(self):
        """A -> B exists, adding B -> A would create a cycle."""
        adj: dict[str, list[str]] = defaultdict(list)
        adj["A"].append("B")
        assert has_path(adj, "A", "B")

    def test_indirect_cycle(self):
        """A -> B -> C exists, adding C -> A would create a cycle."""
        adj: dict[str, list[str]] = defaultdict(list)
        adj["A"].append("B")
        adj["B"].append("C")
        assert has_path(adj, "A", "C")

    def test_no_indirect_cycle(self):
        """A -> B, C -> D: adding D -> A has no cycle."""
        adj: dict[str, list[str]] = defaultdict(list)
        adj["A"].append("B")
        adj["C"].append("D")
        assert not has_path(adj, "A", "D")

    def test_diamond_no_cycle(self):
        """A -> B, A -> C, B -> D, C -> D: adding E -> A has no cycle."""
        adj: dict[str, list[str]] = defaultdict(list)
        adj["A"].extend(["B", "C"])
        adj["B"].append("D")
        adj["C"].append("D")
        assert not has_path(adj, "A", "E")

    def test_existing_cycle_terminates(self):
        """A search through an already-cyclic graph still terminates."""
        adj = {"A": ["B"], "B": ["A"]}
        assert not has_path(adj, "A", "Z")

    def test_depth_bound(self):
        """Targets beyond max_depth are not reached."""
        adj = {"A": ["B"], "B": ["C"], "C": ["D"]}
        assert has_path(adj, "A", "D", max_depth=3)
        assert not has_path(adj, "A", "D", max_depth=2)

    def test_depth_warning_only_when_edges_are_cut(self):
        """Stopping at a leaf is not a truncation."""
        with capture_logs() as logs:
            assert not has_path({"A": ["B"], "B": []}, "A", "Z", max_depth=1)
        assert logs == []

        with capture_logs() as logs:
            assert not has_path({"A": ["B"], "B": ["C"]}, "A", "Z", max_depth=1)
        assert [e["event"] for e in logs] == ["cycle_guard.depth_exceeded"]
        assert logs[0]["log_level"] == "warning"

    def test_depth_warning_logged_once_per_search(self):
        adj = {"A": ["B", "C", "D"], "B": ["E"], "C": ["F"], "D": ["G"]}
        with capture_logs() as logs:
            assert not has_path(adj, "A", "Z", max_depth=1)
        assert len(logs) == 1


# ---------------------------------------------------------------------------
# Guard against the store
# ---------------------------------------------------------------------------


class TestCheckEdge:
    @pytest.mark.asyncio
    async def test_self_loop_rejected(self, session, seed):
        project = await seed.project()
        a = await seed.task(project, "A")
        with pytest.raises(InvalidEdge):
            await check_edge(session, a.id, a.id, project.id)

    @pytest.mark.asyncio
    async def test_reverse_pair_rejected(self, session, seed):
        project = await seed.project()
        a, b = await seed.tasks(project, "A", "B")
        await create_dependency(session, a.id, b.id)

        assert await reverse_edge_exists(session, b.id, a.id)
        with pytest.raises(CycleDetected) as exc:
            await check_edge(session, b.id, a.id, project.id)
        assert "direct cycle" in exc.value.message

    @pytest.mark.asyncio
    async def test_unrelated_edge_accepted(self, session, seed):
        project = await seed.project()
        a, b = await seed.tasks(project, "A", "B")
        await check_edge(session, a.id, b.id, project.id)

    @pytest.mark.asyncio
    async def test_direct_mode_allows_longer_cycle(self, session, seed):
        project = await seed.project()
        a, b, c = await seed.tasks(project, "A", "B", "C")
        await create_dependency(session, a.id, b.id, mode=CycleGuardMode.DIRECT)
        await create_dependency(session, b.id, c.id, mode=CycleGuardMode.DIRECT)

        await check_edge(session, c.id, a.id, project.id, mode=CycleGuardMode.DIRECT)

    @pytest.mark.asyncio
    async def test_transitive_mode_rejects_longer_cycle(self, session, seed):
        project = await seed.project()
        a, b, c = await seed.tasks(project, "A", "B", "C")
        await create_dependency(session, a.id, b.id)
        await create_dependency(session, b.id, c.id)

        with pytest.raises(CycleDetected):
            await check_edge(session, c.id, a.id, project.id, mode=CycleGuardMode.TRANSITIVE)

    @pytest.mark.asyncio
    async def test_transitive_mode_allows_diamond(self, session, seed):
        project = await seed.project()
        a, b, c, d = await seed.tasks(project, "A", "B", "C", "D")
        await create_dependency(session, a.id, b.id)
        await create_dependency(session, a.id, c.id)
        await create_dependency(session, b.id, d.id)

        await check_edge(session, c.id, d.id, project.id, mode=CycleGuardMode.TRANSITIVE)

    @pytest.mark.asyncio
    async def test_transitive_mode_ignores_other_projects(self, session, seed):
        p1 = await seed.project()
        p2 = await seed.project()
        a, b = await seed.tasks(p1, "A", "B")
        x, y = await seed.tasks(p2, "X", "Y")
        await create_dependency(session, x.id, y.id)

        await check_edge(session, a.id, b.id, p1.id, mode=CycleGuardMode.TRANSITIVE)

    @pytest.mark.asyncio
    async def test_unknown_ids_accepted_by_guard(self, session):
        """Existence is checked by the store, not the guard."""
        await check_edge(session, uuid.uuid4(), uuid.uuid4(), uuid.uuid4())
