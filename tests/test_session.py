"""Tests for LineageSession and the renderer boundary."""

import pytest
from conftest import LineSolver, parent

import lineagescope
from lineagescope.errors import NotFoundError, ValidationError
from lineagescope.graph.loader import fallback_dataset
from lineagescope.models.graph import Position
from lineagescope.session import LineageSession
from lineagescope.view.adapter import InteractionAdapter, RenderFrame, Renderer
from lineagescope.view.filters import era_filter

FAMILY = {
    "nodes": [{"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "D"}],
    "links": [parent("A", "B"), parent("A", "C"), parent("B", "D")],
}


class RecordingRenderer(Renderer):
    """Keeps every frame it is asked to draw."""

    def __init__(self) -> None:
        self.frames: list[RenderFrame] = []

    def render(self, frame: RenderFrame) -> None:
        self.frames.append(frame)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def session(line_solver: LineSolver, renderer: RecordingRenderer) -> LineageSession:
    session = LineageSession(solver=line_solver, renderer=renderer)
    session.load(FAMILY)
    return session


class TestLoadAndLayout:
    """Tests for loading data and computing the current layout."""

    def test_load_emits_and_resets(self, session: LineageSession) -> None:
        loaded = session.events.history("data_loaded")

        assert loaded[-1].payload == {"nodes": 4, "edges": 3, "dropped": 0}
        assert session.selection.visible_node_ids == {"A", "B", "C", "D"}
        assert session.current is None

    def test_bad_data_keeps_previous_graph(self, session: LineageSession) -> None:
        previous = session.graph

        with pytest.raises(ValidationError):
            session.load(["not", "a", "dataset"])

        assert session.graph is previous

    def test_layout_renders_frame(
        self, session: LineageSession, renderer: RecordingRenderer
    ) -> None:
        """A layout becomes current and is pushed to the renderer."""
        result = session.layout("hierarchical")

        assert session.current == result
        frame = renderer.frames[-1]
        assert frame.layout_type == "hierarchical"
        assert [p.id for p in frame.nodes] == ["A", "B", "C", "D"]
        assert set(frame.positions) == {"A", "B", "C", "D"}
        assert session.events.history("layout_changed")[-1].payload["reason"] == "layout"

    def test_default_layout_is_force(
        self, session: LineageSession, line_solver: LineSolver
    ) -> None:
        result = session.layout()

        assert result.layout_type == "force"
        assert line_solver.calls

    def test_options_are_remembered_per_type(self, session: LineageSession) -> None:
        """Options stick until the layout type changes."""
        session.layout("grid", {"cell_width": 50})
        again = session.layout()

        assert session.layout_options == {"cell_width": 50}
        assert again.layout_type == "grid"

        session.layout("radial")
        assert session.layout_options is None

    @pytest.mark.asyncio
    async def test_apply_layout(self, session: LineageSession) -> None:
        result = await session.apply_layout("grid")

        assert session.current == result
        assert set(result.positions) == {"A", "B", "C", "D"}


class TestPins:
    """Tests for pinning nodes."""

    def test_pin_updates_current_and_later_layouts(self, session: LineageSession) -> None:
        session.layout("force")

        session.pin("B", 5.0, 6.0)
        assert session.position_of("B") == Position(x=5.0, y=6.0)

        result = session.layout("force")
        assert result.positions["B"] == Position(x=5.0, y=6.0)

    def test_pin_applies_to_any_layout(self, session: LineageSession) -> None:
        session.pin("A", 1.0, 1.0)

        result = session.layout("grid")

        assert result.positions["A"] == Position(x=1.0, y=1.0)

    def test_unpin(self, session: LineageSession) -> None:
        session.pin("A", 1.0, 1.0)

        session.unpin("A")
        session.unpin("A")

        assert session.pins == {}
        assert len(session.events.history("node_unpinned")) == 1

    def test_pin_unknown_node(self, session: LineageSession) -> None:
        with pytest.raises(NotFoundError):
            session.pin("nobody", 0.0, 0.0)


class TestViewChanges:
    """Tests for collapse, expand and filters through the session."""

    def test_collapse_and_expand_keep_positions(self, session: LineageSession) -> None:
        before = session.layout("grid")

        collapsed = session.collapse("B")
        assert collapsed is not None
        assert set(collapsed.positions) == {"A", "B", "C"}

        expanded = session.expand("B")
        assert expanded is not None
        assert expanded.positions["A"] == before.positions["A"]
        assert "D" in expanded.positions
        assert session.events.history("layout_changed")[-1].payload["reason"] == "expand"

    def test_collapse_without_layout(self, session: LineageSession) -> None:
        assert session.collapse("B") is None
        assert session.selection.visible_node_ids == {"A", "B", "C"}

    def test_filters_relayout_visible_nodes(self) -> None:
        session = LineageSession()
        session.load(fallback_dataset())
        session.layout("grid")

        result = session.apply_filters([era_filter("postdiluvian")])

        assert result is not None
        assert result.positions == {}

        restored = session.clear_filters()
        assert restored is not None
        assert len(restored.positions) == 5

    def test_find_path_stats_export(self, session: LineageSession) -> None:
        path = session.find_path("D", "C")

        assert path is not None
        assert path.nodes == ["D", "B", "A", "C"]
        assert session.stats()["node_count"] == 4
        assert '"nodes"' in session.export("json")


class TestSettingsFromEnv:
    """Tests for environment-driven settings."""

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAGESCOPE_CANVAS_WIDTH", "640")
        monkeypatch.setenv("LINEAGESCOPE_HISTORY_LIMIT", "5")

        session = LineageSession.from_env(canvas_height=300)

        assert session.settings.canvas_width == 640
        assert session.settings.canvas_height == 300
        assert session.settings.history_limit == 5

    def test_generation_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAGESCOPE_YEAR_SPAN", "50")

        session = LineageSession.from_env()

        assert session.settings.generation.year_span == 50
        assert session.settings.generation.origin_year == -4000

    def test_open_session_loads_data(self) -> None:
        session = lineagescope.open_session(FAMILY, canvas_width=640)

        assert len(session.graph) == 4
        assert session.settings.canvas_width == 640
        assert lineagescope.open_session().graph.node_ids() == ()


class TestInteractionAdapter:
    """Tests for renderer input handling."""

    def test_click_selects_and_renders(
        self, session: LineageSession, renderer: RecordingRenderer
    ) -> None:
        adapter = InteractionAdapter(session)

        adapter.node_clicked("A")
        adapter.node_clicked("D", additive=True)

        assert renderer.frames[-1].selection.selected_ids == {"A", "D"}

        adapter.background_clicked()
        assert renderer.frames[-1].selection.selected_ids == set()

    def test_hover_highlights(self, session: LineageSession, renderer: RecordingRenderer) -> None:
        adapter = InteractionAdapter(session)

        adapter.node_hovered("D")

        assert renderer.frames[-1].selection.highlighted_ids == {"B", "D"}

        adapter.node_hovered(None)
        assert renderer.frames[-1].selection.highlighted_ids == set()

    def test_drag_pins_then_releases(self, session: LineageSession) -> None:
        """Dragging pins the node; releasing drops the pin."""
        session.layout("grid")
        adapter = InteractionAdapter(session)

        adapter.drag_started("B")
        adapter.drag_moved("B", 10.0, 20.0)
        assert session.position_of("B") == Position(x=10.0, y=20.0)
        assert session.current is not None
        assert session.current.positions["B"] == Position(x=10.0, y=20.0)

        adapter.drag_ended("B")
        assert "B" not in session.pins

    def test_sticky_pins(self, session: LineageSession) -> None:
        session.layout("grid")
        adapter = InteractionAdapter(session, sticky_pins=True)

        adapter.drag_started("B")
        adapter.drag_moved("B", 10.0, 20.0)
        adapter.drag_ended("B")

        assert session.pins["B"] == Position(x=10.0, y=20.0)
