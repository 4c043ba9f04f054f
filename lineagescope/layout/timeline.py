"""Timeline layout: time on the x axis, greedy row packing on y."""

import math
from collections.abc import Sequence

from lineagescope.graph.model import Graph
from lineagescope.layout.base import trivial_layout, visible_components
from lineagescope.layout.options import TimelineOptions
from lineagescope.models.graph import Position


def pack_rows(xs: Sequence[float], min_distance: float) -> list[int]:
    """Assign each x to the lowest row with no neighbor closer than min_distance.

    Args:
        xs: Positions in placement order.
        min_distance: Minimum gap between two positions sharing a row.

    Returns:
        Row index for each input position.
    """
    rows: list[list[float]] = []
    assignment = []
    for x in xs:
        for index, row in enumerate(rows):
            if all(abs(x - other) >= min_distance for other in row):
                row.append(x)
                assignment.append(index)
                break
        else:
            rows.append([x])
            assignment.append(len(rows) - 1)
    return assignment


def _band(
    graph: Graph,
    ids: Sequence[str],
    options: TimelineOptions,
    t_min: float,
    top: float,
) -> tuple[dict[str, Position], float]:
    """Place one component's rows starting at ``top``.

    Returns:
        Tuple of (positions, y of the lowest row used).
    """
    timed: list[tuple[float, int, str]] = []
    untimed: list[str] = []
    for index, node_id in enumerate(ids):
        value = getattr(graph.require_node(node_id), options.time_field)
        if value is None:
            untimed.append(node_id)
        else:
            timed.append((float(value), index, node_id))
    timed.sort()

    positions: dict[str, Position] = {}
    bottom = top
    if timed:
        xs = [options.margin + (t - t_min) * options.time_scale for t, _, _ in timed]
        rows = pack_rows(xs, options.min_distance)
        for (_, _, node_id), x, row in zip(timed, xs, rows, strict=True):
            positions[node_id] = Position(x=x, y=top + row * options.row_spacing)
        bottom = top + max(rows) * options.row_spacing

    if untimed:
        start = bottom + options.untimed_gap if timed else top
        usable = (options.width or 0.0) - 2 * options.margin
        per_row = max(1, math.floor(usable / options.min_distance) + 1)
        for i, node_id in enumerate(untimed):
            positions[node_id] = Position(
                x=options.margin + (i % per_row) * options.min_distance,
                y=start + (i // per_row) * options.row_spacing,
            )
        bottom = start + ((len(untimed) - 1) // per_row) * options.row_spacing
    return positions, bottom


def timeline_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: TimelineOptions,
) -> dict[str, Position]:
    """Lay people out along a time axis.

    Timed nodes are placed in time order (load order breaks ties). Nodes
    without a value for ``time_field`` go in a separate band below their
    component's timeline rows, wrapping at the canvas width. Connected
    components share the time axis and are stacked top to bottom,
    ``component_gap`` apart.
    """
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    times = [getattr(graph.require_node(n), options.time_field) for n in ids]
    t_min = min((float(t) for t in times if t is not None), default=0.0)

    positions: dict[str, Position] = {}
    top = options.margin
    for component in visible_components(graph, ids):
        band, bottom = _band(graph, component, options, t_min, top)
        positions.update(band)
        top = bottom + options.component_gap
    return positions
