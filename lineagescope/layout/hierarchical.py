"""Hierarchical (tree) layout.

Each parent is centered over the span of its children, and levels are
stacked ``level_spacing`` apart. Every recursive call threads the same
``visited`` set, so a node reachable along several parent chains (or
around a parent cycle) is placed exactly once, at its first visit.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from lineagescope.errors import LayoutError
from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import extract_hierarchy
from lineagescope.layout.base import (
    Coordinates,
    center_on,
    compose_components,
    to_positions,
    trivial_layout,
)
from lineagescope.layout.options import HierarchicalOptions
from lineagescope.models.graph import Position


@dataclass
class _Forest:
    """Spanning forest chosen by the depth-first walk."""

    hierarchy: dict[str, list[str]]
    visited: set[str] = field(default_factory=set)
    children: dict[str, list[str]] = field(default_factory=dict)
    widths: dict[str, float] = field(default_factory=dict)
    levels: dict[str, int] = field(default_factory=dict)


def choose_roots(
    ids: Sequence[str],
    hierarchy: dict[str, list[str]],
    options: HierarchicalOptions,
) -> list[str]:
    """Nodes without a visible parent; if none, apply the root policy.

    Raises:
        LayoutError: If every node has a parent and the policy is "none".
    """
    has_parent = {child for children in hierarchy.values() for child in children}
    roots = [n for n in ids if n not in has_parent]
    if roots:
        return roots

    if options.root_policy == "none":
        raise LayoutError("Hierarchy has no root nodes", "hierarchical")

    order = {node_id: i for i, node_id in enumerate(ids)}
    ranked = sorted(ids, key=lambda n: (-len(hierarchy.get(n, [])), order[n]))
    return ranked[: options.max_roots]


def _measure(node_id: str, level: int, forest: _Forest, spacing: float) -> float:
    """Claim a subtree depth-first and return its width."""
    forest.visited.add(node_id)
    forest.levels[node_id] = level

    claimed = []
    width = 0.0
    for child_id in forest.hierarchy.get(node_id, []):
        if child_id in forest.visited:
            continue
        width += _measure(child_id, level + 1, forest, spacing)
        claimed.append(child_id)

    forest.children[node_id] = claimed
    forest.widths[node_id] = max(width, spacing)
    return forest.widths[node_id]


def _place(node_id: str, left: float, forest: _Forest, coords: dict[str, float]) -> None:
    children = forest.children[node_id]
    if not children:
        coords[node_id] = left + forest.widths[node_id] / 2
        return

    cursor = left
    for child_id in children:
        _place(child_id, cursor, forest, coords)
        cursor += forest.widths[child_id]
    coords[node_id] = (coords[children[0]] + coords[children[-1]]) / 2


def _tree(graph: Graph, ids: list[str], options: HierarchicalOptions) -> Coordinates:
    """Tree coordinates for one connected component."""
    forest = _Forest(
        hierarchy=extract_hierarchy(graph, options.parent_edge_types, set(ids))
    )
    roots = choose_roots(ids, forest.hierarchy, options)

    placed_roots = []
    for root_id in roots + ids:
        if root_id in forest.visited:
            continue
        _measure(root_id, 0, forest, options.node_spacing)
        placed_roots.append(root_id)

    if not forest.levels:
        raise LayoutError("No nodes resolved to a hierarchy level", "hierarchical")

    cross: dict[str, float] = {}
    cursor = 0.0
    for root_id in placed_roots:
        _place(root_id, cursor, forest, cross)
        cursor += forest.widths[root_id]

    coords: Coordinates = {}
    for node_id, x in cross.items():
        along = forest.levels[node_id] * options.level_spacing
        if options.orientation == "vertical":
            coords[node_id] = (x, along)
        else:
            coords[node_id] = (along, x)
    return coords


def hierarchical_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: HierarchicalOptions,
) -> dict[str, Position]:
    """Lay out visible nodes as a top-down family tree.

    Each connected component is its own forest. Roots are nodes with no
    incoming parent edge among the visible nodes (or the top nodes by child
    count when there are none). Nodes left unplaced after walking every
    root, such as members of a parent cycle unreachable from any root,
    become extra roots in load order.

    Args:
        graph: Genealogy graph.
        visible_ids: Node ids to lay out.
        options: Hierarchical layout options.

    Returns:
        Dict mapping node ID to Position.

    Raises:
        LayoutError: If no roots can be chosen (see ``root_policy``).
    """
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    coords = compose_components(graph, ids, options, lambda c: _tree(graph, c, options))
    cx, cy = options.center
    return to_positions(center_on(coords, cx, cy))
