"""Radial layouts: one concentric ring per generation, or a single circle."""

import math
from collections.abc import Mapping, Sequence

from lineagescope.graph.generations import calculate_generations
from lineagescope.graph.model import Graph
from lineagescope.layout.base import Coordinates, compose_components, to_positions, trivial_layout
from lineagescope.layout.options import CircularOptions, RadialOptions
from lineagescope.models.graph import Position


def generation_rings(
    graph: Graph,
    ids: Sequence[str],
    generations: Mapping[str, int] | None = None,
) -> dict[int, list[str]]:
    """Group ids by generation, keeping the order of ``ids`` within a ring.

    People without a stored generation use the derived value.
    """
    derived: Mapping[str, int] | None = generations
    rings: dict[int, list[str]] = {}
    for node_id in ids:
        generation = graph.require_node(node_id).generation
        if generation is None:
            if derived is None:
                derived = calculate_generations(graph)
            generation = derived[node_id]
        rings.setdefault(generation, []).append(node_id)
    return dict(sorted(rings.items()))


def radial_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: RadialOptions,
) -> dict[str, Position]:
    """Place each generation on a circle around the canvas center.

    Ring radius is ``base_radius + generation * ring_spacing`` and node i of
    a ring of n sits at angle ``start_angle + 2*pi*i/n``. With
    ``relative_generations`` the lowest generation of each connected
    component counts as 0. Components get their own rings and are packed
    side by side.
    """
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    generations = None
    if any(graph.require_node(n).generation is None for n in ids):
        generations = calculate_generations(graph)
    cx, cy = options.center

    def rings_for(component: list[str]) -> Coordinates:
        rings = generation_rings(graph, component, generations)
        offset = min(rings) if options.relative_generations else 0
        coords: Coordinates = {}
        for generation, members in rings.items():
            radius = options.base_radius + (generation - offset) * options.ring_spacing
            count = len(members)
            for i, node_id in enumerate(members):
                angle = options.start_angle + 2 * math.pi * i / count
                coords[node_id] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
        return coords

    return to_positions(compose_components(graph, ids, options, rings_for))


def circular_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: CircularOptions,
) -> dict[str, Position]:
    """Place people evenly on one circle in load order, ignoring generations.

    The circle radius is ``radius_ratio`` of the shorter canvas side. When
    there are several components each gets its own circle, scaled by its
    share of the nodes so the spacing along every circle is the same.
    """
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    cx, cy = options.center
    full_radius = options.radius_ratio * min(options.width or 0.0, options.height or 0.0)

    def circle_for(component: list[str]) -> Coordinates:
        radius = full_radius * len(component) / len(ids)
        count = len(component)
        return {
            node_id: (
                cx + radius * math.cos(options.start_angle + 2 * math.pi * i / count),
                cy + radius * math.sin(options.start_angle + 2 * math.pi * i / count),
            )
            for i, node_id in enumerate(component)
        }

    return to_positions(compose_components(graph, ids, options, circle_for))
