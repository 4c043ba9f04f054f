"""Force-directed layout.

The layout only configures forces and decides which nodes are pinned; the
relaxation itself is delegated to a ForceSolver. Solvers work on a mutable
buffer of NodeState records, and the results are copied out of that buffer
as soon as the solver returns.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import networkx as nx
import numpy as np

from lineagescope.graph.model import Graph
from lineagescope.layout.base import compose_components, trivial_layout
from lineagescope.layout.cluster import GOLDEN_ANGLE
from lineagescope.layout.options import ForceOptions
from lineagescope.logging import log_progress
from lineagescope.models.graph import Position

CancelCheck = Callable[[], bool]


@dataclass
class NodeState:
    """Solver-owned position record for one node."""

    id: str
    x: float
    y: float
    fx: float | None = None
    fy: float | None = None
    charge: float = -120.0
    radius: float = 10.0

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


@dataclass(frozen=True)
class LinkSpec:
    """Spring between two nodes."""

    source: str
    target: str
    strength: float
    distance: float


@dataclass(frozen=True)
class ForceConfig:
    """Global force parameters handed to the solver."""

    center: tuple[float, float]
    center_strength: float
    charge_strength: float
    link_distance: float
    collision_factor: float
    iterations: int
    chunk_size: int
    seed: int


class ForceSolver(ABC):
    """Iterative position solver used by the force-directed layout."""

    @abstractmethod
    def solve(
        self,
        nodes: list[NodeState],
        links: list[LinkSpec],
        config: ForceConfig,
        cancelled: CancelCheck | None = None,
    ) -> bool:
        """Relax ``nodes`` in place.

        Pinned nodes must end at (fx, fy).

        Returns:
            True if the solver ran to completion, False if it was cancelled.
        """


class SpringForceSolver(ForceSolver):
    """ForceSolver backed by NetworkX's Fruchterman-Reingold spring layout.

    Coordinates are scaled so that one layout unit equals ``link_distance``
    pixels. Iterations run in chunks with a cancellation check in between;
    a final collision pass separates nodes closer than their collision radii.
    """

    def solve(
        self,
        nodes: list[NodeState],
        links: list[LinkSpec],
        config: ForceConfig,
        cancelled: CancelCheck | None = None,
    ) -> bool:
        if not nodes:
            return True

        cx, cy = config.center
        unit = config.link_distance
        G = nx.Graph()
        G.add_nodes_from(n.id for n in nodes)
        for link in links:
            if G.has_edge(link.source, link.target):
                G[link.source][link.target]["weight"] += link.strength
            else:
                G.add_edge(link.source, link.target, weight=link.strength)

        pos = {}
        for n in nodes:
            x, y = (n.fx, n.fy) if n.pinned else (n.x, n.y)
            pos[n.id] = np.array([(x - cx) / unit, (y - cy) / unit])
        fixed = [n.id for n in nodes if n.pinned] or None

        # Stronger repulsion spreads nodes further apart
        k = math.sqrt(abs(config.charge_strength) / 120.0) if config.charge_strength else None

        done = 0
        while done < config.iterations:
            if cancelled is not None and cancelled():
                return False
            chunk = min(config.chunk_size, config.iterations - done)
            pos = nx.spring_layout(
                G,
                k=k,
                pos=pos,
                fixed=fixed,
                iterations=chunk,
                weight="weight",
                scale=None,
                seed=config.seed,
            )
            done += chunk
            log_progress("force relaxation", done, config.iterations)

        for n in nodes:
            if n.pinned:
                n.x, n.y = n.fx, n.fy
            else:
                n.x = cx + float(pos[n.id][0]) * unit
                n.y = cy + float(pos[n.id][1]) * unit

        if fixed is None and config.center_strength > 0:
            mean_x = sum(n.x for n in nodes) / len(nodes)
            mean_y = sum(n.y for n in nodes) / len(nodes)
            for n in nodes:
                n.x += cx - mean_x
                n.y += cy - mean_y

        resolve_collisions(nodes, config.collision_factor)
        return True


def resolve_collisions(nodes: list[NodeState], factor: float, passes: int = 3) -> None:
    """Push apart free nodes whose collision circles overlap."""
    if len(nodes) < 2:
        return
    pos = np.array([[n.x, n.y] for n in nodes], dtype=float)
    radii = np.array([n.radius * factor for n in nodes])
    movable = np.array([0.0 if n.pinned else 1.0 for n in nodes])

    for _ in range(passes):
        delta = pos[:, None, :] - pos[None, :, :]
        dist = np.sqrt((delta**2).sum(axis=-1))
        np.fill_diagonal(dist, np.inf)
        overlap = np.clip(radii[:, None] + radii[None, :] - dist, 0, None)
        if not overlap.any():
            break
        direction = delta / np.maximum(dist, 1e-9)[..., None]
        push = (direction * (overlap / 2)[..., None]).sum(axis=1)
        pos = pos + push * movable[:, None]

    for n, (x, y) in zip(nodes, pos, strict=True):
        if not n.pinned:
            n.x, n.y = float(x), float(y)


def node_importance(graph: Graph, node_id: str) -> float:
    """Importance from connection count, boosted for key figures."""
    person = graph.require_node(node_id)
    importance = 1.0 + graph.degree(node_id)
    if person.attributes.get("is_key_figure"):
        importance += 2.0
    return importance


def build_node_states(
    graph: Graph,
    ids: Sequence[str],
    options: ForceOptions,
    initial: Mapping[str, Position] | None = None,
    pinned: Mapping[str, Position] | None = None,
) -> list[NodeState]:
    """Configure per-node charge, radius, start position and pins.

    Pins come from the person's ``fixed_x``/``fixed_y``, then ``options.pins``,
    then ``pinned`` (later sources win). Free nodes start at their ``initial``
    position when given, otherwise on a spiral around the canvas center.
    """
    cx, cy = options.center
    states = []
    for i, node_id in enumerate(ids):
        person = graph.require_node(node_id)
        scale = math.sqrt(node_importance(graph, node_id))
        if initial is not None and node_id in initial:
            x, y = initial[node_id].x, initial[node_id].y
        else:
            r = options.link_distance * 0.5 * math.sqrt(i)
            x = cx + r * math.cos(i * GOLDEN_ANGLE)
            y = cy + r * math.sin(i * GOLDEN_ANGLE)

        fx, fy = person.fixed_x, person.fixed_y
        if node_id in options.pins:
            fx, fy = options.pins[node_id]
        if pinned is not None and node_id in pinned:
            fx, fy = pinned[node_id].x, pinned[node_id].y
        if fx is None or fy is None:
            fx = fy = None

        states.append(
            NodeState(
                id=node_id,
                x=x,
                y=y,
                fx=fx,
                fy=fy,
                charge=options.charge_strength * scale,
                radius=options.node_radius * min(scale, 3.0),
            )
        )
    return states


def build_links(graph: Graph, ids: Sequence[str], options: ForceOptions) -> list[LinkSpec]:
    """One spring per visible edge, strength scaled by the edge weight."""
    members = set(ids)
    return [
        LinkSpec(
            source=rel.source_id,
            target=rel.target_id,
            strength=options.link_strength * rel.weight,
            distance=options.link_distance,
        )
        for rel in graph.edges_within(members)
        if rel.source_id != rel.target_id
    ]


def force_config(options: ForceOptions) -> ForceConfig:
    return ForceConfig(
        center=options.center,
        center_strength=options.center_strength,
        charge_strength=options.charge_strength,
        link_distance=options.link_distance,
        collision_factor=options.collision_factor,
        iterations=options.iterations,
        chunk_size=options.chunk_size,
        seed=options.seed,
    )


def force_layout(
    graph: Graph,
    visible_ids: Sequence[str],
    options: ForceOptions,
    solver: ForceSolver | None = None,
    initial: Mapping[str, Position] | None = None,
    pinned: Mapping[str, Position] | None = None,
    cancelled: CancelCheck | None = None,
) -> dict[str, Position]:
    """Configure forces, run the solver and copy its results out.

    Disconnected components are solved separately and packed side by side,
    unless some node is pinned, in which case the whole set is solved at
    once so that pins keep their absolute coordinates.

    Args:
        graph: Genealogy graph.
        visible_ids: Node ids to lay out.
        options: Force options.
        solver: Solver to use (defaults to SpringForceSolver).
        initial: Optional start positions (e.g., a previous layout).
        pinned: Positions that must not move.
        cancelled: Polled by the solver between iteration chunks.

    Returns:
        Dict mapping node ID to Position, or an empty dict if cancelled.
    """
    ids = graph.ordered(visible_ids)
    any_pinned = any(s.pinned for s in build_node_states(graph, ids, options, None, pinned))
    trivial = trivial_layout(ids, options)
    if trivial is not None and not any_pinned:
        return trivial

    solver = solver or SpringForceSolver()
    config = force_config(options)
    aborted = False

    def solve(component: list[str]) -> dict[str, tuple[float, float]]:
        nonlocal aborted
        if aborted:
            return {}
        states = build_node_states(graph, component, options, initial, pinned)
        if not solver.solve(states, build_links(graph, component, options), config, cancelled):
            aborted = True
            return {}
        # Copy out of the solver buffer immediately
        return {s.id: (s.x, s.y) for s in states}

    if any_pinned:
        coords = solve(ids)
    else:
        coords = compose_components(graph, ids, options, solve)

    if aborted:
        return {}
    return {node_id: Position(x=x, y=y) for node_id, (x, y) in coords.items()}
