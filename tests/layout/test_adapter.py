"""Tests for the dot layout adapter.

Tests cover:
- Coordinate mapping (scaling and vertical normalization)
- Cycle lifecycle (non-blocking run, states, results)
- Failure surfacing (serialization, engine, consistency)
- Independent cycles (repeat and overlapping runs)
- Options validation and the layout registry
"""

import asyncio

import networkx as nx
import pytest
from pydantic import ValidationError

from dotlayout.config.settings import LayoutSettings, reset_settings
from dotlayout.core.surface import NetworkXSurface
from dotlayout.layout.adapter import DotLayout, DotLayoutOptions, LayoutCycle, LayoutState
from dotlayout.layout.engines.graphviz import GraphvizEngine
from dotlayout.layout.errors import ConsistencyError, EngineError, SerializationError
from dotlayout.layout.registry import get_layout
from dotlayout.models.graph_elements import Selection
from dotlayout.models.layout_metadata import NodePosition
from tests.fixtures.rendered_svg import StaticEngine

SETTINGS = LayoutSettings()


def flat_surface(node_ids=("A", "B", "C"), edges=(("A", "B"), ("B", "C"))):
    graph = nx.DiGraph()
    for node_id in node_ids:
        graph.add_node(node_id, label=node_id)
    graph.add_edges_from(edges)
    return NetworkXSurface(graph)


def clustered_elements():
    """Shape of the analysis backend's /graph payload: children before parents."""
    return [
        {"group": "nodes", "data": {"id": "conf-0-1", "parent": "conf-0", "str": "main\nentry"}},
        {"group": "nodes", "data": {"id": "conf-0-2", "parent": "conf-0", "str": "worker"}},
        {"group": "nodes", "data": {"id": "conf-1-1", "parent": "conf-1", "str": "main\nexit"}},
        {"group": "edges", "data": {"id": "conf-0-1-conf-1-1", "source": "conf-0-1", "target": "conf-1-1"}},
        {"group": "nodes", "data": {"id": "conf-0", "str": "", "blocks": False}},
        {"group": "nodes", "data": {"id": "conf-1", "str": "Panics", "blocks": True}},
    ]


def make_layout(surface, engine, settings=SETTINGS, **extra):
    return DotLayout({"eles": surface.selection(), "surface": surface, "engine": engine, "settings": settings, **extra})


# =============================================================================
# Coordinate mapping
# =============================================================================


class TestCoordinateMapping:
    """Rendered centers -> display positions."""

    @pytest.mark.asyncio
    async def test_round_trip_positions(self):
        """Positions equal (2cx, 2cy - minY + 30) with minY over all 2cy."""
        centers = {"A": (27, -90), "B": (63, -18), "C": (99.5, -162.5)}
        surface = flat_surface()
        result = await make_layout(surface, StaticEngine(centers)).run()

        min_y = min(2 * cy for _, cy in centers.values())
        for node_id, (cx, cy) in centers.items():
            position = result.positions[node_id]
            assert position.x == 2 * cx
            assert position.y == 2 * cy - min_y + 30
            assert surface.position(node_id) == position
        assert result.min_y == min_y

    @pytest.mark.asyncio
    async def test_topmost_node_at_offset(self):
        centers = {"A": (27, -90), "B": (27, -18), "C": (27, 40)}
        result = await make_layout(flat_surface(), StaticEngine(centers)).run()

        assert min(p.y for p in result.positions.values()) == 30
        assert result.bounding_box.min_y == 30

    @pytest.mark.asyncio
    async def test_single_node(self):
        """Boundary: a lone node lands exactly at the vertical offset."""
        surface = flat_surface(["solo"], [])
        result = await make_layout(surface, StaticEngine({"solo": (27, -18)})).run()

        assert result.positions["solo"].x == 54
        assert result.positions["solo"].y == 30

    @pytest.mark.asyncio
    async def test_integer_node_keys(self):
        surface = NetworkXSurface(nx.DiGraph([(1, 2)]))
        result = await surface.layout(
            engine=StaticEngine({"1": (0, -10), "2": (0, 0)}), settings=SETTINGS
        ).run()

        assert set(result.positions) == {"1", "2"}
        assert surface.graph.nodes[1]["position"] == NodePosition(x=0, y=30)
        assert surface.position(2) == NodePosition(x=0, y=50)

    @pytest.mark.asyncio
    async def test_parallel_edges_each_get_a_statement(self):
        surface = NetworkXSurface.from_elements([
            {"group": "nodes", "data": {"id": "A"}},
            {"group": "nodes", "data": {"id": "B"}},
            {"group": "edges", "data": {"id": "e1", "source": "A", "target": "B"}},
            {"group": "edges", "data": {"id": "e2", "source": "A", "target": "B"}},
        ])
        engine = StaticEngine({"A": (0, -10), "B": (0, 0)})
        await surface.layout(engine=engine, settings=SETTINGS).run()

        assert engine.descriptions[0].count('"A" -> "B";') == 2

    @pytest.mark.asyncio
    async def test_space_padded_ids_round_trip(self):
        """Titles are read verbatim, so ids with surrounding spaces keep their positions."""
        surface = flat_surface([" A", "A "], [(" A", "A ")])
        engine = StaticEngine({" A": (10, -40), "A ": (10, -4)})
        result = await make_layout(surface, engine).run()

        assert set(result.positions) == {" A", "A "}
        assert surface.position(" A").y == 30
        assert surface.position("A ").y == 102

    @pytest.mark.asyncio
    async def test_custom_settings(self):
        settings = LayoutSettings(coordinate_scale=1, vertical_offset=0)
        centers = {"A": (10, -50), "B": (20, -10), "C": (30, 0)}
        result = await make_layout(flat_surface(), StaticEngine(centers), settings=settings).run()

        assert result.positions["A"].to_list() == [10, 0]
        assert result.positions["B"].to_list() == [20, 40]
        assert result.positions["C"].to_list() == [30, 50]
        assert result.settings == settings

    @pytest.mark.asyncio
    async def test_clustered_graph(self):
        """Only point-nodes are positioned; clusters follow their children."""
        surface = NetworkXSurface.from_elements(clustered_elements())
        engine = StaticEngine({
            "conf-0-1": (40, -150),
            "conf-0-2": (120, -150),
            "conf-1-1": (40, -30),
        })
        result = await make_layout(surface, engine).run()

        assert set(result.positions) == {"conf-0-1", "conf-0-2", "conf-1-1"}
        assert 'subgraph "cluster_conf-0"' in engine.descriptions[0]
        assert 'subgraph "cluster_conf-1"' in engine.descriptions[0]

        cluster = surface.position("conf-0")
        assert cluster.x == (80 + 240) / 2
        assert cluster.y == 30
        assert "position" not in surface.graph.nodes["conf-0"]


# =============================================================================
# Lifecycle
# =============================================================================


class TestLayoutCycle:
    """run() contract and cycle state machine."""

    @pytest.mark.asyncio
    async def test_run_returns_before_positions_applied(self):
        surface = flat_surface()
        cycle = make_layout(surface, StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})).run()

        assert isinstance(cycle, LayoutCycle)
        assert cycle.state is LayoutState.IDLE
        assert not cycle.done()
        assert surface.positions() == {}

        await cycle
        assert cycle.done()
        assert cycle.state is LayoutState.DONE
        assert set(surface.positions()) == {"A", "B", "C"}

    @pytest.mark.asyncio
    async def test_result_before_completion(self):
        cycle = make_layout(flat_surface(), StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})).run()

        with pytest.raises(RuntimeError):
            cycle.result()

        result = await cycle
        assert cycle.result() is result

    @pytest.mark.asyncio
    async def test_cycle_keeps_its_artifacts(self):
        engine = StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})
        cycle = make_layout(flat_surface(), engine).run()
        await cycle

        assert cycle.description.node_ids == ("A", "B", "C")
        assert cycle.description.text == engine.descriptions[0]
        assert "<svg" in cycle.rendered

    @pytest.mark.asyncio
    async def test_cycle_runs_once(self):
        cycle = make_layout(flat_surface(), StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})).run()
        await cycle

        with pytest.raises(RuntimeError):
            cycle.start()

    @pytest.mark.asyncio
    async def test_run_async(self):
        result = await make_layout(flat_surface(), StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})).run_async()
        assert result.algorithm == "dot"
        assert result.engine == "static"

    @pytest.mark.asyncio
    async def test_empty_selection_skips_engine(self):
        engine = StaticEngine({})
        result = await make_layout(NetworkXSurface(), engine).run()

        assert result.positions == {}
        assert result.bounding_box is None
        assert engine.descriptions == []

    def test_run_without_event_loop(self):
        layout = make_layout(flat_surface(), StaticEngine({}))

        with pytest.raises(RuntimeError, match="run_sync"):
            layout.run()

    def test_run_sync(self):
        surface = flat_surface()
        result = make_layout(surface, StaticEngine({"A": (0, -4), "B": (0, 1), "C": (0, 2)})).run_sync()

        assert result.positions["A"].y == 30
        assert surface.position("C").y == 30 + 12


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Every failure reaches whoever awaits the cycle."""

    @pytest.mark.asyncio
    async def test_missing_shape_is_consistency_error(self):
        """B is declared but not rendered: nothing is applied."""
        surface = flat_surface(["A", "B"], [("A", "B")])
        cycle = make_layout(surface, StaticEngine({"A": (27, -90)})).run()

        with pytest.raises(ConsistencyError) as exc_info:
            await cycle

        assert exc_info.value.missing == ["B"]
        assert cycle.state is LayoutState.FAILED
        assert cycle.failed_in is LayoutState.PARSING
        assert cycle.error is exc_info.value
        assert surface.positions() == {}
        with pytest.raises(ConsistencyError):
            cycle.result()

    @pytest.mark.asyncio
    async def test_engine_failure_is_engine_error(self):
        error = EngineError("static", "dot exited with status 1", returncode=1, stderr="syntax error in line 3")
        surface = flat_surface()
        cycle = make_layout(surface, StaticEngine(error=error)).run()

        with pytest.raises(EngineError) as exc_info:
            await cycle

        assert exc_info.value is error
        assert "syntax error" in str(exc_info.value)
        assert cycle.failed_in is LayoutState.RENDERING
        assert surface.positions() == {}

    @pytest.mark.asyncio
    async def test_malformed_output_is_engine_error(self):
        cycle = make_layout(flat_surface(), StaticEngine(svg="<svg><g>")).run()

        with pytest.raises(EngineError):
            await cycle
        assert cycle.failed_in is LayoutState.PARSING

    @pytest.mark.asyncio
    async def test_serialization_failure_before_engine(self):
        surface = flat_surface(["ok", "bad\\id"], [("ok", "bad\\id")])
        engine = StaticEngine({"ok": (0, 0)})
        cycle = make_layout(surface, engine).run()

        with pytest.raises(SerializationError):
            await cycle

        assert engine.descriptions == []
        assert cycle.failed_in is LayoutState.SERIALIZING


# =============================================================================
# Independent cycles
# =============================================================================


class TestIndependentCycles:
    """Repeated and overlapping runs."""

    @pytest.mark.asyncio
    async def test_idempotent(self):
        """Same selection, deterministic engine: same positions."""
        centers = {"A": (27, -90), "B": (63, -18), "C": (99, -54)}
        layout = make_layout(flat_surface(), StaticEngine(centers))

        first = await layout.run()
        second = await layout.run()

        assert first.positions == second.positions

    @pytest.mark.asyncio
    async def test_overlapping_runs(self):
        centers = {"A": (27, -90), "B": (63, -18), "C": (99, -54)}
        engine = StaticEngine(centers)
        layout = make_layout(flat_surface(), engine)

        cycle1 = layout.run()
        cycle2 = layout.run()
        assert cycle1 is not cycle2
        assert layout.last_cycle is cycle2

        result1, result2 = await asyncio.gather(cycle1, cycle2)
        assert result1.positions == result2.positions
        assert len(engine.descriptions) == 2


# =============================================================================
# Options and registry
# =============================================================================


class TestOptions:
    """DotLayoutOptions validation."""

    def test_surface_required(self):
        with pytest.raises(ValidationError):
            DotLayout({"eles": Selection()})

    def test_eles_required(self):
        with pytest.raises(ValidationError):
            DotLayout({"surface": NetworkXSurface()})

    def test_surface_type_checked(self):
        with pytest.raises(ValidationError):
            DotLayout({"eles": Selection(), "surface": object()})

    def test_default_engine_from_settings(self):
        settings = LayoutSettings(dot_path="/opt/graphviz/bin/dot", engine_timeout=5)
        layout = DotLayout(eles=Selection(), surface=NetworkXSurface(), settings=settings)

        assert isinstance(layout.options.engine, GraphvizEngine)
        assert layout.options.engine.dot_path == "/opt/graphviz/bin/dot"
        assert layout.options.engine.timeout == 5

    def test_explicit_settings_override_environment(self, monkeypatch):
        """No timeout in the layout's settings means no timeout, whatever the process says."""
        monkeypatch.setenv("DOTLAYOUT_ENGINE_TIMEOUT", "7")
        monkeypatch.setenv("DOTLAYOUT_DOT_PATH", "/env/dot")
        reset_settings()
        try:
            layout = DotLayout(eles=Selection(), surface=NetworkXSurface(), settings=LayoutSettings())

            assert layout.options.engine.timeout is None
            assert layout.options.engine.dot_path == "dot"
        finally:
            reset_settings()

    def test_element_json_accepted(self):
        layout = DotLayout({"eles": clustered_elements(), "surface": NetworkXSurface()})

        assert isinstance(layout.options.eles, Selection)
        assert layout.options.eles.has_clusters

    def test_options_instance_accepted(self):
        options = DotLayoutOptions(eles=Selection(), surface=NetworkXSurface(), engine=StaticEngine({}))
        assert DotLayout(options).options is options

    @pytest.mark.asyncio
    async def test_extra_options_reach_size_hints(self):
        engine = StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})
        layout = make_layout(flat_surface(), engine, include_labels=False)

        assert layout.options.size_options == {"include_labels": False}
        await layout.run()
        assert "width=0.3,height=0.3" in engine.descriptions[0]


class TestRegistry:
    """Named layout lookup through the surface."""

    def test_dot_registered(self):
        assert get_layout("dot") is DotLayout

    def test_unknown_layout(self):
        with pytest.raises(ValueError, match="Unknown layout"):
            flat_surface().layout({"name": "cose"})

    @pytest.mark.asyncio
    async def test_surface_layout_defaults_to_everything(self):
        surface = flat_surface()
        engine = StaticEngine({"A": (0, 0), "B": (0, 1), "C": (0, 2)})
        layout = surface.layout({"name": "dot"}, engine=engine)

        assert isinstance(layout, DotLayout)
        assert layout.options.surface is surface
        assert layout.options.eles.node_ids() == ["A", "B", "C"]

        await layout.run()
        assert set(surface.positions()) == {"A", "B", "C"}

    @pytest.mark.asyncio
    async def test_surface_layout_subset(self):
        surface = flat_surface()
        eles = surface.selection().subset(["A", "B"])
        layout = surface.layout(eles=eles, engine=StaticEngine({"A": (0, 0), "B": (0, 10)}))

        await layout.run()
        assert set(surface.positions()) == {"A", "B"}
