"""LineageSession: the context object that owns one graph and its views.

A session holds the loaded Graph, the LayoutEngine (with its cache), the
SelectionManager, the EventLog and the caller's pins. Nothing is shared
between sessions, so several independent visualizations can live in one
process.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from lineagescope.config import EngineSettings, load_settings
from lineagescope.events import EventLog
from lineagescope.export import export_graph
from lineagescope.graph.analysis import compute_statistics
from lineagescope.graph.loader import load_dataset
from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import find_relationship_path
from lineagescope.layout.engine import LayoutEngine, OptionsInput
from lineagescope.layout.force import ForceSolver
from lineagescope.layout.options import LayoutOptions
from lineagescope.logging import logger
from lineagescope.models.graph import LayoutResult, LoadReport, Position, RelationshipPath
from lineagescope.view.adapter import RenderFrame, Renderer
from lineagescope.view.filters import NodeFilter
from lineagescope.view.selection import SelectionManager

DEFAULT_LAYOUT = "force"


class LineageSession:
    """One graph, its layout engine, view state and event log.

    Example:
        session = LineageSession()
        session.load({"nodes": [...], "links": [...]})
        session.layout("hierarchical")
        session.selection.select(["abraham"])
        frame = session.frame()
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        solver: ForceSolver | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.renderer = renderer
        self.events = EventLog()
        self.graph = Graph()
        self.engine = LayoutEngine(self.graph, self.settings, solver)
        self.selection = SelectionManager(self.graph, self.settings, self.events)
        self.pins: dict[str, Position] = {}
        self.layout_type = DEFAULT_LAYOUT
        self.layout_options: OptionsInput = None
        self.current: LayoutResult | None = None

    @classmethod
    def from_env(
        cls,
        solver: ForceSolver | None = None,
        renderer: Renderer | None = None,
        **overrides: Any,
    ) -> "LineageSession":
        """Create a session with settings read from ``LINEAGESCOPE_*`` variables."""
        return cls(load_settings(**overrides), solver=solver, renderer=renderer)

    # -- data -------------------------------------------------------------

    def load(self, data: Any) -> LoadReport:
        """Load a raw dataset, replacing the current graph.

        Raises:
            ValidationError: For malformed input. The previous graph stays
                loaded in that case.
        """
        graph = load_dataset(data, self.settings)
        self.load_graph(graph)
        return graph.load_report

    def load_graph(self, graph: Graph) -> None:
        """Install an already built graph and reset all derived state."""
        self.graph = graph
        self.engine.set_graph(graph)
        self.selection.reset(graph)
        self.pins.clear()
        self.current = None
        self.events.emit(
            "data_loaded",
            nodes=graph.load_report.node_count,
            edges=graph.load_report.edge_count,
            dropped=graph.load_report.dropped_edges,
        )

    # -- layout -----------------------------------------------------------

    def _options_with_pins(self, layout_type: str, options: OptionsInput) -> OptionsInput:
        if layout_type != "force" or not self.pins:
            return options
        opts = self.engine.resolve_options(layout_type, options)
        pins = {**opts.pins, **{n: (p.x, p.y) for n, p in self.pins.items()}}
        return opts.model_copy(update={"pins": pins})

    def _apply_pins(self, result: LayoutResult) -> LayoutResult:
        pinned = {n: p for n, p in self.pins.items() if n in result.positions}
        if not pinned:
            return result
        return result.model_copy(update={"positions": {**result.positions, **pinned}})

    def _set_current(self, result: LayoutResult, reason: str) -> LayoutResult:
        self.current = self._apply_pins(result)
        self.events.emit(
            "layout_changed",
            layout_type=self.current.layout_type,
            reason=reason,
            nodes=len(self.current.positions),
            fallback_from=self.current.fallback_from,
        )
        self.render()
        return self.current

    def layout(
        self,
        layout_type: str | None = None,
        options: LayoutOptions | Mapping[str, Any] | None = None,
    ) -> LayoutResult:
        """Lay out the visible nodes synchronously and make it the current layout.

        Args:
            layout_type: Strategy name (default: the last one used).
            options: Strategy options (default: the last ones used with it).

        Returns:
            The current LayoutResult.
        """
        layout_type, options = self._remember(layout_type, options)
        result = self.engine.compute(
            layout_type,
            self.selection.visible_node_ids,
            self._options_with_pins(layout_type, options),
        )
        return self._set_current(result, "layout")

    async def apply_layout(
        self,
        layout_type: str | None = None,
        options: LayoutOptions | Mapping[str, Any] | None = None,
    ) -> LayoutResult:
        """Async variant of ``layout``; a newer call cancels an older one.

        Raises:
            asyncio.CancelledError: If superseded by a newer request.
        """
        layout_type, options = self._remember(layout_type, options)
        result = await self.engine.apply(
            layout_type,
            self.selection.visible_node_ids,
            self._options_with_pins(layout_type, options),
        )
        return self._set_current(result, "layout")

    def _remember(
        self, layout_type: str | None, options: OptionsInput
    ) -> tuple[str, OptionsInput]:
        if layout_type is not None and layout_type != self.layout_type:
            self.layout_options = None
        self.layout_type = layout_type or self.layout_type
        if options is not None:
            self.layout_options = options
        return self.layout_type, self.layout_options

    def _relayout(self, reason: str) -> LayoutResult | None:
        """Update the current layout after the visible set changed."""
        if self.current is None:
            return None
        result = self.engine.relayout_incremental(
            self.current,
            self.selection.visible_node_ids,
            self.layout_type,
            self._options_with_pins(self.layout_type, self.layout_options),
        )
        return self._set_current(result, reason)

    # -- view state -------------------------------------------------------

    def expand(self, node_id: str) -> LayoutResult | None:
        """Expand a node, placing newly visible nodes next to their neighbors."""
        self.selection.expand(node_id)
        return self._relayout("expand")

    def collapse(self, node_id: str) -> LayoutResult | None:
        self.selection.collapse(node_id)
        return self._relayout("collapse")

    def apply_filters(self, filters: Iterable[NodeFilter]) -> LayoutResult | None:
        """Filter the visible nodes and lay out the remainder from scratch."""
        self.selection.apply_filters(filters)
        if self.current is None:
            return None
        return self.layout()

    def clear_filters(self) -> LayoutResult | None:
        return self.apply_filters(())

    # -- pins -------------------------------------------------------------

    def position_of(self, node_id: str) -> Position | None:
        if node_id in self.pins:
            return self.pins[node_id]
        if self.current is None:
            return None
        return self.current.positions.get(node_id)

    def pin(self, node_id: str, x: float, y: float) -> None:
        """Fix a node at (x, y) in the current and every later layout.

        Raises:
            NotFoundError: If the node does not exist.
        """
        self.graph.require_node(node_id)
        self.pins[node_id] = Position(x=x, y=y)
        if self.current is not None and node_id in self.current.positions:
            self.current = self._apply_pins(self.current)
        self.events.emit("node_pinned", node_id=node_id, x=x, y=y)

    def unpin(self, node_id: str) -> None:
        """Release a pin; the node keeps its position until the next layout."""
        if self.pins.pop(node_id, None) is not None:
            self.events.emit("node_unpinned", node_id=node_id)

    # -- output -----------------------------------------------------------

    def frame(self) -> RenderFrame:
        return RenderFrame(
            nodes=self.selection.visible_nodes(),
            edges=self.selection.visible_edges(),
            positions=dict(self.current.positions) if self.current else {},
            selection=self.selection.snapshot(),
            layout_type=self.current.layout_type if self.current else None,
        )

    def render(self) -> None:
        if self.renderer is None:
            return
        self.renderer.render(self.frame())
        logger.debug("Rendered frame")

    def find_path(self, source: str, target: str, max_depth: int = 10) -> RelationshipPath | None:
        """Shortest relationship path with a readable description, or None."""
        return find_relationship_path(self.graph, source, target, max_depth=max_depth)

    def stats(self) -> dict[str, Any]:
        return compute_statistics(self.graph)

    def export(self, fmt: str = "json") -> str | dict[str, str]:
        return export_graph(self.graph, fmt)
