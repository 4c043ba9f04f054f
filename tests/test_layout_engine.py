"""Tests for LayoutEngine: dispatch, caching, fallback and cancellation."""

import asyncio
import logging

import pytest
from conftest import LineSolver, SlowSolver, make_graph, parent

from lineagescope.config import EngineSettings
from lineagescope.errors import LayoutError
from lineagescope.graph.model import Graph
from lineagescope.layout.cache import LayoutCache, make_key
from lineagescope.layout.engine import LayoutEngine
from lineagescope.layout.options import ForceOptions, GridOptions
from lineagescope.models.graph import LayoutResult


def spy_on(engine: LayoutEngine, layout_type: str) -> list[list[str]]:
    """Wrap a strategy and record the ids of each call."""
    calls: list[list[str]] = []
    original = engine.strategies[layout_type]

    def spy(graph, ids, options):
        calls.append(list(ids))
        return original(graph, ids, options)

    engine.strategies[layout_type] = spy
    return calls


class TestCaching:
    """Tests for value-keyed layout caching."""

    def test_same_inputs_compute_once(self, family_graph: Graph) -> None:
        """Equal type, options and node set reuse the cached positions."""
        engine = LayoutEngine(family_graph)
        calls = spy_on(engine, "grid")

        first = engine.compute("grid", ["A", "B"], {"cell_width": 50})
        second = engine.compute("grid", ["B", "A"], GridOptions(cell_width=50))

        assert len(calls) == 1
        assert first.positions == second.positions

    def test_different_options_recompute(self, family_graph: Graph) -> None:
        engine = LayoutEngine(family_graph)
        calls = spy_on(engine, "grid")

        engine.compute("grid", options={"cell_width": 50})
        engine.compute("grid", options={"cell_width": 60})

        assert len(calls) == 2

    def test_graph_change_invalidates(self, family_graph: Graph) -> None:
        """A structural change bumps the revision and drops cached layouts."""
        engine = LayoutEngine(family_graph)
        calls = spy_on(engine, "grid")

        engine.compute("grid", ["A", "B"])
        family_graph.add_node({"id": "E"})
        engine.compute("grid", ["A", "B"])

        assert len(calls) == 2

    def test_returned_results_are_snapshots(self, family_graph: Graph) -> None:
        """Mutating a returned result does not touch the cache."""
        engine = LayoutEngine(family_graph)

        result = engine.compute("grid")
        result.positions.clear()

        assert len(engine.compute("grid").positions) == 4

    def test_set_graph_clears_cache(self, family_graph: Graph, chain_graph: Graph) -> None:
        engine = LayoutEngine(family_graph)
        engine.compute("grid")

        engine.set_graph(chain_graph)

        assert len(engine.cache) == 0

    def test_cache_evicts_least_recently_used(self) -> None:
        cache = LayoutCache(max_entries=2)
        keys = [make_key("grid", GridOptions(cell_width=w), ["a"]) for w in (10, 20, 30)]
        result = LayoutResult(layout_type="grid", options_signature="", node_signature=("a",))

        cache.put(keys[0], result, 0)
        cache.put(keys[1], result, 0)
        cache.get(keys[0], 0)
        cache.put(keys[2], result, 0)

        assert keys[0] in cache
        assert keys[1] not in cache


class TestDispatchAndFallback:
    """Tests for strategy dispatch, option handling and the grid fallback."""

    def test_unknown_layout_type(self, family_graph: Graph) -> None:
        with pytest.raises(LayoutError):
            LayoutEngine(family_graph).compute("spiral")

    def test_invalid_options(self, family_graph: Graph) -> None:
        """Bad option values surface as LayoutError."""
        with pytest.raises(LayoutError):
            LayoutEngine(family_graph).compute("grid", options={"cell_width": -5})

    def test_resolve_options_fills_canvas(self, family_graph: Graph) -> None:
        """Canvas size and node radius come from settings unless given."""
        settings = EngineSettings(canvas_width=640, canvas_height=480, node_radius=7)
        engine = LayoutEngine(family_graph, settings)

        opts = engine.resolve_options("force")
        explicit = engine.resolve_options("force", {"width": 100, "node_radius": 3})

        assert isinstance(opts, ForceOptions)
        assert (opts.width, opts.height, opts.node_radius) == (640, 480, 7)
        assert (explicit.width, explicit.height, explicit.node_radius) == (100, 480, 3)

    def test_failed_layout_falls_back_to_grid(self) -> None:
        """A rootless hierarchy under root_policy none falls back to grid."""
        graph = make_graph(["a", "b"], [parent("a", "b"), parent("b", "a")])
        engine = LayoutEngine(graph)

        result = engine.compute("hierarchical", options={"root_policy": "none"})

        assert result.layout_type == "grid"
        assert result.fallback_from == "hierarchical"
        assert result.warnings
        assert set(result.positions) == {"a", "b"}

    def test_layout_covers_visible_nodes_only(self, family_graph: Graph) -> None:
        result = LayoutEngine(family_graph).compute("radial", ["A", "B"])

        assert set(result.positions) == {"A", "B"}
        assert result.node_signature == ("A", "B")

    def test_layout_is_timed_and_logged(
        self, family_graph: Graph, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="lineagescope"):
            result = LayoutEngine(family_graph).compute("grid")

        assert result.elapsed_ms >= 0
        messages = [r.getMessage() for r in caplog.records]
        assert "layout started type=grid nodes=4" in messages
        assert any(m.startswith("layout finished in ") for m in messages)

    def test_force_uses_engine_solver(self, family_graph: Graph, line_solver: LineSolver) -> None:
        engine = LayoutEngine(family_graph, solver=line_solver)

        result = engine.compute("force")

        assert len(line_solver.calls) == 1
        assert result.positions["B"].x == 100.0


class TestIncrementalRelayout:
    """Tests for relayout after nodes appear."""

    def test_grid_keeps_existing_positions(self, family_graph: Graph) -> None:
        """Old nodes stay put; the new node is placed."""
        engine = LayoutEngine(family_graph)
        previous = engine.compute("grid", ["A", "B", "C"])

        result = engine.relayout_incremental(previous, ["A", "B", "C", "D"])

        for node_id in ("A", "B", "C"):
            assert result.positions[node_id] == previous.positions[node_id]
        assert "D" in result.positions

    def test_force_pins_previous_nodes(
        self, family_graph: Graph, line_solver: LineSolver
    ) -> None:
        engine = LayoutEngine(family_graph, solver=line_solver)
        previous = engine.compute("force", ["A", "B"])

        result = engine.relayout_incremental(previous, ["A", "B", "D"])

        assert result.positions["A"] == previous.positions["A"]
        assert result.positions["B"] == previous.positions["B"]
        assert set(result.positions) == {"A", "B", "D"}

    def test_removed_nodes_drop_out(self, family_graph: Graph) -> None:
        engine = LayoutEngine(family_graph)
        previous = engine.compute("grid")

        result = engine.relayout_incremental(previous, ["A", "C"])

        assert set(result.positions) == {"A", "C"}
        assert result.positions["C"] == previous.positions["C"]


class TestAsyncApply:
    """Tests for the asynchronous, last-request-wins path."""

    @pytest.mark.asyncio
    async def test_newer_request_cancels_older(self, family_graph: Graph) -> None:
        """The superseded request is cancelled and never cached."""
        solver = SlowSolver(chunk_seconds=0.05, chunks=10)
        engine = LayoutEngine(family_graph, solver=solver)

        first = asyncio.ensure_future(engine.apply("force", options={"seed": 1}))
        assert await asyncio.to_thread(solver.started.wait, 5)
        second = await engine.apply("force", options={"seed": 2})

        with pytest.raises(asyncio.CancelledError):
            await first

        assert set(second.positions) == {"A", "B", "C", "D"}
        assert len(engine.cache) == 1
        seed_two = engine.resolve_options("force", {"seed": 2})
        assert make_key("force", seed_two, family_graph.node_ids()) in engine.cache
        assert solver.cancelled_runs == 1
        assert solver.completed_runs == 1

    @pytest.mark.asyncio
    async def test_apply_uses_cache(self, family_graph: Graph) -> None:
        engine = LayoutEngine(family_graph)
        calls = spy_on(engine, "grid")

        first = await engine.apply("grid")
        second = await engine.apply("grid")

        assert len(calls) == 1
        assert first.positions == second.positions
