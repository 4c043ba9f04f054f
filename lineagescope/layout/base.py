"""Helpers shared by layout strategies."""

from collections.abc import Callable, Sequence

import networkx as nx

from lineagescope.graph.model import Graph
from lineagescope.layout.options import LayoutOptions
from lineagescope.models.graph import Position

Coordinates = dict[str, tuple[float, float]]
ComponentLayout = Callable[[list[str]], Coordinates]


def to_positions(coords: Coordinates) -> dict[str, Position]:
    return {node_id: Position(x=float(x), y=float(y)) for node_id, (x, y) in coords.items()}


def bounding_box(coords: Coordinates) -> tuple[float, float, float, float]:
    """Return (min_x, min_y, max_x, max_y) of a non-empty coordinate map."""
    xs = [x for x, _ in coords.values()]
    ys = [y for _, y in coords.values()]
    return min(xs), min(ys), max(xs), max(ys)


def translate(coords: Coordinates, dx: float, dy: float) -> Coordinates:
    return {node_id: (x + dx, y + dy) for node_id, (x, y) in coords.items()}


def center_on(coords: Coordinates, cx: float, cy: float) -> Coordinates:
    """Shift coordinates so their bounding box is centered on (cx, cy)."""
    if not coords:
        return coords
    min_x, min_y, max_x, max_y = bounding_box(coords)
    return translate(coords, cx - (min_x + max_x) / 2, cy - (min_y + max_y) / 2)


def trivial_layout(ids: Sequence[str], options: LayoutOptions) -> dict[str, Position] | None:
    """Handle the empty and single-node cases every strategy shares."""
    if not ids:
        return {}
    if len(ids) == 1:
        cx, cy = options.center
        return {ids[0]: Position(x=cx, y=cy)}
    return None


def visible_components(graph: Graph, ids: Sequence[str]) -> list[list[str]]:
    """Connected components of the visible subgraph, each in load order."""
    G = graph.to_networkx(node_ids=set(ids))
    return [graph.ordered(c) for c in nx.connected_components(G)]


def compose_components(
    graph: Graph,
    ids: Sequence[str],
    options: LayoutOptions,
    layout_component: ComponentLayout,
) -> Coordinates:
    """Lay out each connected component independently, then pack them.

    Components are placed left to right in load order with
    ``options.component_gap`` between bounding boxes and their tops
    aligned. A component that would cross the usable canvas width starts a
    new shelf below the tallest box of the current one. The packed result
    is centered on the canvas; a single component is returned as laid out.
    """
    components = visible_components(graph, ids)
    if len(components) == 1:
        return layout_component(components[0])

    usable = (options.width or 0.0) - 2 * options.margin
    packed: Coordinates = {}
    x = y = shelf_height = 0.0
    for component in components:
        coords = layout_component(component)
        if not coords:
            continue
        min_x, min_y, max_x, max_y = bounding_box(coords)
        width, height = max_x - min_x, max_y - min_y
        if x > 0 and x + width > usable:
            x = 0.0
            y += shelf_height + options.component_gap
            shelf_height = 0.0
        packed.update(translate(coords, x - min_x, y - min_y))
        x += width + options.component_gap
        shelf_height = max(shelf_height, height)

    cx, cy = options.center
    return center_on(packed, cx, cy)
