"""Selection and view state.

The manager owns SelectionState, the active filters and the derived
visible node and edge sets. Every mutator recomputes the derived sets
from scratch, which makes calling a mutator twice with the same arguments
a no-op the second time.

Visibility rules:

- ``filtered`` nodes match every active filter; ``filtered`` edges have
  both endpoints filtered.
- With nothing collapsed, every filtered node is visible.
- Collapsing a node removes its edges from the walk. A node stays visible
  only if it is still reachable from an anchor: each filtered component's
  parentless nodes, or its first node when it has no parent edges. A
  collapsed node is visible only when the walk reaches it.
- Expanding lifts a collapse. The neighbors of a visible, uncollapsed node
  are always reached, so ``expanded_ids`` never reveals a hidden node.
"""

from collections import deque
from collections.abc import Iterable
from typing import Any

from lineagescope.config import EngineSettings
from lineagescope.events import EventLog
from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import neighborhood, parents_of
from lineagescope.logging import logger
from lineagescope.models.graph import Person, Relationship, SelectionState
from lineagescope.view.filters import NodeFilter, matches_all

PARENT_TYPES = ("parent", "child")


class SelectionManager:
    """Tracks selection, highlights, expand/collapse and filters for one graph."""

    def __init__(
        self,
        graph: Graph,
        settings: EngineSettings | None = None,
        events: EventLog | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.events = events
        self.graph = graph
        self.state = SelectionState()
        self.filters: tuple[NodeFilter, ...] = ()
        self._undo: deque[tuple[SelectionState, tuple[NodeFilter, ...]]] = deque(
            maxlen=self.settings.history_limit
        )
        self._redo: deque[tuple[SelectionState, tuple[NodeFilter, ...]]] = deque(
            maxlen=self.settings.history_limit
        )
        self.filtered_node_ids: frozenset[str] = frozenset()
        self.filtered_edge_ids: frozenset[str] = frozenset()
        self.visible_node_ids: frozenset[str] = frozenset()
        self.visible_edge_ids: frozenset[str] = frozenset()
        self._hover_levels = self.settings.highlight_depth
        self._recompute()

    # -- lifecycle --------------------------------------------------------

    def reset(self, graph: Graph | None = None) -> None:
        """Clear all view state, optionally switching to a new graph."""
        if graph is not None:
            self.graph = graph
        self.state = SelectionState()
        self.filters = ()
        self._undo.clear()
        self._redo.clear()
        self._recompute()
        self._emit("selection_reset")

    # -- selection and highlight -------------------------------------------

    def select(self, ids: Iterable[str], exclusive: bool = True) -> None:
        """Select nodes, replacing (exclusive) or extending the selection.

        Unknown ids are ignored.
        """
        known = {i for i in ids if i in self.graph}
        selected = known if exclusive else self.state.selected_ids | known
        self._mutate(selected_ids=selected)

    def deselect(self, ids: Iterable[str]) -> None:
        self._mutate(selected_ids=self.state.selected_ids - set(ids))

    def clear_selection(self) -> None:
        self._mutate(selected_ids=set(), hovered_id=None)

    def highlight_connections(self, node_id: str | None, levels: int | None = None) -> None:
        """Highlight a hovered node's neighborhood.

        Args:
            node_id: Hovered node, or ``None`` to clear the hover.
            levels: Hops to highlight (default: ``highlight_depth`` setting).
        """
        if node_id is not None and node_id not in self.graph:
            node_id = None
        self._hover_levels = self.settings.highlight_depth if levels is None else levels
        self._mutate(hovered_id=node_id)

    def clear_highlights(self) -> None:
        self._mutate(hovered_id=None)

    # -- expand / collapse --------------------------------------------------

    def expand(self, node_id: str) -> None:
        self.graph.require_node(node_id)
        self._mutate(
            expanded_ids=self.state.expanded_ids | {node_id},
            collapsed_ids=self.state.collapsed_ids - {node_id},
        )

    def collapse(self, node_id: str) -> None:
        """Hide what is only reachable through ``node_id``.

        A node that is already hidden stays hidden, so expanding it again
        restores the visible set from before the collapse.
        """
        self.graph.require_node(node_id)
        self._mutate(
            collapsed_ids=self.state.collapsed_ids | {node_id},
            expanded_ids=self.state.expanded_ids - {node_id},
        )

    # -- filters ------------------------------------------------------------

    def apply_filters(self, filters: Iterable[NodeFilter]) -> None:
        """Replace the active filters."""
        self._mutate(filters=tuple(filters))

    def clear_filters(self) -> None:
        self._mutate(filters=())

    # -- history ------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the state before the last change; False if nothing to undo."""
        if not self._undo:
            return False
        self._redo.append(self._snapshot())
        self._restore(self._undo.pop())
        self._emit("selection_changed", action="undo")
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._snapshot())
        self._restore(self._redo.pop())
        self._emit("selection_changed", action="redo")
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    # -- snapshots for the renderer ------------------------------------------

    def visible_nodes(self) -> list[Person]:
        return [p for p in self.graph.all_nodes() if p.id in self.visible_node_ids]

    def visible_edges(self) -> list[Relationship]:
        return [r for r in self.graph.all_edges() if r.id in self.visible_edge_ids]

    def snapshot(self) -> SelectionState:
        return self.state.model_copy(deep=True)

    # -- internals ------------------------------------------------------------

    def _snapshot(self) -> tuple[SelectionState, tuple[NodeFilter, ...]]:
        return self.state.model_copy(deep=True), self.filters

    def _restore(self, snapshot: tuple[SelectionState, tuple[NodeFilter, ...]]) -> None:
        self.state, self.filters = snapshot[0].model_copy(deep=True), snapshot[1]
        self._recompute()

    def _mutate(self, filters: tuple[NodeFilter, ...] | None = None, **changes: Any) -> None:
        before = self._snapshot()
        if changes:
            self.state = self.state.model_copy(update=changes)
        if filters is not None:
            self.filters = filters
        self._recompute()

        if self._snapshot() == before:
            return
        self._undo.append(before)
        self._redo.clear()
        payload = {k: sorted(v) if isinstance(v, set) else v for k, v in changes.items()}
        self._emit("selection_changed", **payload)

    def _recompute(self) -> None:
        people = self.graph.all_nodes()
        filtered = frozenset(p.id for p in people if matches_all(p, self.filters))
        filtered_edges = frozenset(
            r.id for r in self.graph.edges_within(filtered)
        )
        visible = self._apply_collapse(filtered)
        visible_edges = frozenset(
            r.id for r in self.graph.edges_within(visible) if r.id in filtered_edges
        )

        changed = visible != self.visible_node_ids
        self.filtered_node_ids = filtered
        self.filtered_edge_ids = filtered_edges
        self.visible_node_ids = visible
        self.visible_edge_ids = visible_edges
        self._recompute_highlights()
        if changed:
            logger.debug("Visible set: %d of %d nodes", len(visible), len(people))
            self._emit("visibility_changed", visible=len(visible), total=len(people))

    def _anchors(self, filtered: frozenset[str]) -> set[str]:
        parents = parents_of(self.graph, PARENT_TYPES, filtered)
        anchors: set[str] = set()
        seen: set[str] = set()
        for node_id in self.graph.ordered(filtered):
            if node_id in seen:
                continue
            component = self._reach({node_id}, filtered, set())
            seen |= component
            roots = [n for n in component if n not in parents]
            has_parent_edges = any(n in parents for n in component)
            if has_parent_edges and roots:
                anchors.update(roots)
            else:
                anchors.add(node_id)
        return anchors

    def _reach(self, start: set[str], allowed: frozenset[str], blocked: set[str]) -> set[str]:
        """Nodes reachable from ``start`` within ``allowed`` without passing a blocked node."""
        reached = set(start)
        queue = deque(start)
        while queue:
            node_id = queue.popleft()
            if node_id in blocked:
                continue
            for neighbor_id, _rel in self.graph.neighbors(node_id):
                if neighbor_id in allowed and neighbor_id not in reached:
                    reached.add(neighbor_id)
                    if neighbor_id not in blocked:
                        queue.append(neighbor_id)
        return reached

    def _apply_collapse(self, filtered: frozenset[str]) -> frozenset[str]:
        collapsed = self.state.collapsed_ids & filtered
        if not collapsed:
            return filtered
        anchors = self._anchors(filtered)
        # Walking out of a collapsed node is blocked, reaching it is not
        return frozenset(self._reach(anchors, filtered, set(collapsed)))

    def _recompute_highlights(self) -> None:
        focus: list[tuple[str, int]] = []
        if self.settings.highlight_on_select:
            focus.extend((n, self.settings.highlight_depth) for n in self.state.selected_ids)
        if self.state.hovered_id is not None:
            focus.append((self.state.hovered_id, self._hover_levels))

        nodes: set[str] = set()
        edges: set[str] = set()
        for node_id, depth in focus:
            hood = neighborhood(self.graph, node_id, depth)
            nodes |= hood.nodes
            edges |= hood.edges
        self.state = self.state.model_copy(
            update={
                "highlighted_ids": nodes & self.visible_node_ids,
                "highlighted_edge_ids": edges & self.visible_edge_ids,
            }
        )

    def _emit(self, name: str, **payload: Any) -> None:
        if self.events is not None:
            self.events.emit(name, **payload)
