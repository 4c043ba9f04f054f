"""Cluster layout: groups on a circle, members relaxed around their centroid."""

import math
from collections.abc import Sequence

import numpy as np

from lineagescope.graph.model import Graph
from lineagescope.layout.base import Coordinates, compose_components, to_positions, trivial_layout
from lineagescope.layout.options import ClusterOptions
from lineagescope.models.graph import Position

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


def group_members(graph: Graph, ids: Sequence[str], attribute: str) -> dict[str, list[str]]:
    """Group ids by a person field or attribute, in first-appearance order.

    Missing values are grouped under "unknown".
    """
    groups: dict[str, list[str]] = {}
    for node_id in ids:
        value = graph.require_node(node_id).value(attribute)
        key = "unknown" if value is None or value == "" else str(value)
        groups.setdefault(key, []).append(node_id)
    return groups


def relax_group(
    centroid: tuple[float, float],
    count: int,
    options: ClusterOptions,
) -> np.ndarray:
    """Run a bounded local repulsion + centering simulation for one group.

    Members start on a sunflower spiral around the centroid, so the result
    is deterministic.

    Returns:
        Array of shape (count, 2) with member coordinates.
    """
    spacing = options.node_radius * 2 * options.collide_factor
    index = np.arange(count, dtype=float)
    radius = spacing * np.sqrt(index) * 0.75
    theta = index * GOLDEN_ANGLE
    center = np.asarray(centroid, dtype=float)
    pos = np.column_stack((radius * np.cos(theta), radius * np.sin(theta))) + center
    if count < 2:
        return pos

    alpha = 1.0
    decay = 1 - 0.001 ** (1 / max(options.iterations, 1))
    for _ in range(options.iterations):
        delta = pos[:, None, :] - pos[None, :, :]
        dist2 = (delta**2).sum(axis=-1)
        np.fill_diagonal(dist2, np.inf)
        dist2 = np.maximum(dist2, 1e-6)

        # Inverse-distance repulsion (charge is negative for repulsion)
        repulse = (delta / dist2[..., None]).sum(axis=1) * -options.charge
        pull = (center - pos) * options.center_strength
        step = (repulse + pull) * alpha
        norms = np.linalg.norm(step, axis=1, keepdims=True)
        step = np.where(norms > spacing, step * spacing / np.maximum(norms, 1e-9), step)
        pos = pos + step

        dist = np.sqrt((np.square(pos[:, None, :] - pos[None, :, :])).sum(axis=-1))
        np.fill_diagonal(dist, np.inf)
        overlap = np.clip(spacing - dist, 0, None)
        if overlap.any():
            direction = (pos[:, None, :] - pos[None, :, :]) / np.maximum(dist, 1e-9)[..., None]
            pos = pos + (direction * (overlap / 2)[..., None]).sum(axis=1)

        alpha *= 1 - decay
    return pos


def cluster_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: ClusterOptions,
) -> dict[str, Position]:
    """Place groups evenly on a circle and relax each group independently.

    The centroid circle has radius ``radius_ratio * min(width, height)``; a
    single group sits at the canvas center. Each connected component gets
    its own circle of groups.
    """
    ids = graph.ordered(visible_ids)
    trivial = trivial_layout(ids, options)
    if trivial is not None:
        return trivial

    cx, cy = options.center
    ring = options.radius_ratio * min(options.width or 0.0, options.height or 0.0)

    def clusters_for(component: list[str]) -> Coordinates:
        groups = group_members(graph, component, options.group_attribute)
        coords: Coordinates = {}
        for k, members in enumerate(groups.values()):
            if len(groups) == 1:
                centroid = (cx, cy)
            else:
                angle = 2 * math.pi * k / len(groups)
                centroid = (cx + ring * math.cos(angle), cy + ring * math.sin(angle))

            relaxed = relax_group(centroid, len(members), options)
            for node_id, (x, y) in zip(members, relaxed, strict=True):
                coords[node_id] = (float(x), float(y))
        return coords

    return to_positions(compose_components(graph, ids, options, clusters_for))
