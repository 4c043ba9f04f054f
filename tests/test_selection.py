"""Tests for the selection and view state manager."""

import pytest
from conftest import make_graph, parent

from lineagescope.config import EngineSettings
from lineagescope.errors import NotFoundError
from lineagescope.events import EventLog
from lineagescope.graph.model import Graph
from lineagescope.view.filters import (
    RangeFilter,
    SearchFilter,
    era_filter,
    gender_filter,
    generation_range,
)
from lineagescope.view.selection import SelectionManager


class TestSelection:
    """Tests for select, deselect and highlight."""

    def test_select_highlights_neighborhood(self, family_graph: Graph) -> None:
        """Selecting a node highlights its direct relatives."""
        manager = SelectionManager(family_graph)

        manager.select(["A"])

        assert manager.state.selected_ids == {"A"}
        assert manager.state.highlighted_ids == {"A", "B", "C"}
        assert len(manager.state.highlighted_edge_ids) == 2

    def test_additive_select_and_deselect(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)

        manager.select(["A"])
        manager.select(["D"], exclusive=False)
        manager.deselect(["A"])

        assert manager.state.selected_ids == {"D"}

    def test_unknown_ids_are_ignored(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)

        manager.select(["nobody"])

        assert manager.state.selected_ids == set()
        assert not manager.can_undo

    def test_repeated_select_is_one_change(self, family_graph: Graph) -> None:
        """The same selection twice leaves a single undo entry."""
        manager = SelectionManager(family_graph)

        manager.select(["A"])
        manager.select(["A"])
        manager.undo()

        assert not manager.can_undo
        assert manager.state.selected_ids == set()

    def test_hover_levels(self, family_graph: Graph) -> None:
        """Hover highlights the requested number of hops."""
        manager = SelectionManager(family_graph)

        manager.highlight_connections("D", levels=2)

        assert manager.state.hovered_id == "D"
        assert manager.state.highlighted_ids == {"A", "B", "D"}

        manager.clear_highlights()
        assert manager.state.highlighted_ids == set()

    def test_highlight_on_select_can_be_disabled(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph, EngineSettings(highlight_on_select=False))

        manager.select(["A"])

        assert manager.state.highlighted_ids == set()

    def test_clear_selection_drops_hover(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)
        manager.select(["A"])
        manager.highlight_connections("D")

        manager.clear_selection()

        assert manager.state.selected_ids == set()
        assert manager.state.hovered_id is None
        assert manager.state.highlighted_ids == set()


class TestFilters:
    """Tests for filtered and visible sets."""

    def test_era_filter(self, era_graph: Graph) -> None:
        """Only one era's people stay; no parent edge joins two of them."""
        manager = SelectionManager(era_graph)

        manager.apply_filters([era_filter("antediluvian")])

        assert manager.visible_node_ids == {"p0", "p4", "p8", "p12", "p16"}
        assert manager.visible_edge_ids == frozenset()

    def test_filters_combine(self, era_graph: Graph) -> None:
        """All active filters must match."""
        manager = SelectionManager(era_graph)

        manager.apply_filters([era_filter("antediluvian"), SearchFilter(query="person 1")])

        assert manager.visible_node_ids == {"p12", "p16"}

    def test_gender_filter(self) -> None:
        graph = make_graph([{"id": "a", "gender": "female"}, {"id": "b", "gender": "male"}, "c"])
        manager = SelectionManager(graph)

        manager.apply_filters([gender_filter("female")])

        assert manager.visible_node_ids == {"a"}

    def test_callable_filter(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)

        manager.apply_filters([lambda person: person.id != "C"])

        assert [p.id for p in manager.visible_nodes()] == ["A", "B", "D"]

    def test_range_filter_missing_values(self) -> None:
        """People without a value are dropped unless keep_missing is set."""
        graph = make_graph([{"id": "a", "generation": 1}, {"id": "b"}])
        manager = SelectionManager(graph)

        manager.apply_filters([generation_range(0, 2)])
        assert manager.visible_node_ids == {"a"}

        manager.apply_filters([RangeFilter(field="generation", minimum=0, keep_missing=True)])
        assert manager.visible_node_ids == {"a", "b"}

    def test_clear_filters(self, era_graph: Graph) -> None:
        manager = SelectionManager(era_graph)
        manager.apply_filters([era_filter("exodus")])

        manager.clear_filters()

        assert len(manager.visible_node_ids) == 20

    def test_highlights_limited_to_visible(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)
        manager.apply_filters([lambda person: person.id != "B"])

        manager.select(["A"])

        assert manager.state.highlighted_ids == {"A", "C"}


class TestExpandCollapse:
    """Tests for collapse reachability."""

    def test_collapse_hides_descendants(self, family_graph: Graph) -> None:
        """Collapsing B hides D but keeps B and its parent visible."""
        manager = SelectionManager(family_graph)

        manager.collapse("B")

        assert manager.visible_node_ids == {"A", "B", "C"}
        assert len(manager.visible_edge_ids) == 2

    def test_expand_restores(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)
        manager.collapse("B")

        manager.expand("B")

        assert manager.visible_node_ids == {"A", "B", "C", "D"}
        assert manager.state.collapsed_ids == set()

    def test_collapsed_root(self, chain_graph: Graph) -> None:
        """A collapsed root stays visible alone."""
        manager = SelectionManager(chain_graph)

        manager.collapse("A")

        assert manager.visible_node_ids == {"A"}

    def test_other_paths_keep_nodes_visible(self) -> None:
        """A node reachable around the collapsed one stays visible."""
        graph = make_graph(
            ["a", "b", "c", "d"],
            [parent("a", "b"), parent("b", "d"), parent("a", "c"), parent("c", "d")],
        )
        manager = SelectionManager(graph)

        manager.collapse("b")

        assert manager.visible_node_ids == {"a", "b", "c", "d"}

    def test_collapsing_hidden_node_round_trip(self) -> None:
        """Collapsing then expanding a hidden node leaves the view unchanged."""
        graph = make_graph(
            ["A", "B", "C", "D"], [parent("A", "B"), parent("B", "C"), parent("C", "D")]
        )
        manager = SelectionManager(graph)
        manager.collapse("A")
        before = set(manager.visible_node_ids)

        manager.collapse("C")
        assert manager.visible_node_ids == before

        manager.expand("C")
        assert manager.visible_node_ids == before == {"A"}

    def test_repeated_expand_after_collapse(self, chain_graph: Graph) -> None:
        """A second expand of the same node changes nothing."""
        manager = SelectionManager(chain_graph)
        manager.collapse("B")
        assert manager.visible_node_ids == {"A", "B"}

        manager.expand("B")
        state = manager.snapshot()
        manager.expand("B")

        assert manager.snapshot() == state
        assert manager.visible_node_ids == {"A", "B", "C"}
        assert manager.can_undo

    def test_unknown_node_raises(self, family_graph: Graph) -> None:
        with pytest.raises(NotFoundError):
            SelectionManager(family_graph).collapse("nobody")


class TestHistory:
    """Tests for undo and redo."""

    def test_undo_redo(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)
        manager.select(["A"])
        manager.select(["B"])

        assert manager.undo()
        assert manager.state.selected_ids == {"A"}
        assert manager.redo()
        assert manager.state.selected_ids == {"B"}

    def test_undo_restores_filters(self, era_graph: Graph) -> None:
        manager = SelectionManager(era_graph)
        manager.apply_filters([era_filter("judges")])

        manager.undo()

        assert manager.filters == ()
        assert len(manager.visible_node_ids) == 20

    def test_new_change_clears_redo(self, family_graph: Graph) -> None:
        manager = SelectionManager(family_graph)
        manager.select(["A"])
        manager.undo()

        manager.select(["C"])

        assert not manager.can_redo
        assert not manager.redo()

    def test_history_limit(self, family_graph: Graph) -> None:
        """Only the most recent changes can be undone."""
        manager = SelectionManager(family_graph, EngineSettings(history_limit=2))
        for node_id in ("A", "B", "C"):
            manager.select([node_id])

        assert manager.undo()
        assert manager.undo()
        assert not manager.undo()
        assert manager.state.selected_ids == {"A"}


class TestSelectionEvents:
    """Tests for events emitted by the manager."""

    def test_change_events(self, family_graph: Graph) -> None:
        events = EventLog()
        manager = SelectionManager(family_graph, events=events)

        manager.select(["A"])
        manager.select(["A"])
        manager.collapse("B")
        manager.undo()

        changes = events.history("selection_changed")
        assert [e.payload.get("action") for e in changes] == [None, None, "undo"]
        assert changes[0].payload["selected_ids"] == ["A"]
        visibility = events.history("visibility_changed")
        assert [e.payload["visible"] for e in visibility] == [4, 3, 4]

    def test_reset(self, family_graph: Graph, chain_graph: Graph) -> None:
        events = EventLog()
        manager = SelectionManager(family_graph, events=events)
        manager.select(["A"])

        manager.reset(chain_graph)

        assert manager.state.selected_ids == set()
        assert manager.visible_node_ids == {"A", "B", "C"}
        assert not manager.can_undo
        assert events.history()[-1].name == "selection_reset"
