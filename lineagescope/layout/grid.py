"""Grid layout, also the fallback for strategies that cannot place nodes."""

import math
from collections.abc import Sequence

from lineagescope.graph.model import Graph
from lineagescope.layout.base import Coordinates, compose_components, to_positions, trivial_layout
from lineagescope.layout.options import GridOptions
from lineagescope.models.graph import Position


def grid_cells(ids: Sequence[str], options: GridOptions) -> Coordinates:
    """Row by row, ``ceil(sqrt(n))`` columns, centered on the canvas."""
    cols = math.ceil(math.sqrt(len(ids)))
    rows = math.ceil(len(ids) / cols)
    cx, cy = options.center

    coords = {}
    for idx, node_id in enumerate(ids):
        row, col = idx // cols, idx % cols
        coords[node_id] = (
            cx + (col - (cols - 1) / 2) * options.cell_width,
            cy + (row - (rows - 1) / 2) * options.cell_height,
        )
    return coords


def grid_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: GridOptions,
) -> dict[str, Position]:
    """One grid per connected component, components packed side by side."""
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    return to_positions(
        compose_components(graph, ids, options, lambda c: grid_cells(c, options))
    )
