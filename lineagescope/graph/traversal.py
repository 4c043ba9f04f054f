"""Graph traversal: paths, components, neighborhoods and hierarchy.

All queries treat edges as undirected for reachability and enumerate
neighbors in edge load order, so results are deterministic for a given
dataset. Queries that find nothing return None or an empty result; they
never raise for a missing path.
"""

from collections.abc import Collection, Iterable

import networkx as nx

from lineagescope.errors import TraversalLimitError
from lineagescope.graph.model import Graph
from lineagescope.graph.relations import CHILD_TO_PARENT_TYPES
from lineagescope.models.graph import Neighborhood, PathStep, Relationship, RelationshipPath

DEFAULT_PARENT_TYPES: tuple[str, ...] = ("parent",)


def _bfs_predecessors(
    graph: Graph,
    source: str,
    target: str,
    edge_types: Collection[str] | None,
    max_depth: int | None,
) -> dict[str, tuple[str, Relationship] | None] | None:
    """Level-by-level BFS from source until target is discovered.

    Returns:
        Predecessor map (node -> (previous node, edge)) containing target,
        or None when the target is unreachable.

    Raises:
        TraversalLimitError: If the frontier is still non-empty at max_depth.
    """
    previous: dict[str, tuple[str, Relationship] | None] = {source: None}
    current_level = [source]
    depth = 0

    while current_level:
        if max_depth is not None and depth >= max_depth:
            raise TraversalLimitError(
                f"No path from {source} to {target} within {max_depth} hops", max_depth
            )
        depth += 1
        next_level = []
        for node_id in current_level:
            for neighbor_id, rel in graph.neighbors(node_id, edge_types):
                if neighbor_id in previous:
                    continue
                previous[neighbor_id] = (node_id, rel)
                if neighbor_id == target:
                    return previous
                next_level.append(neighbor_id)
        current_level = next_level

    return None


def _unwind(
    previous: dict[str, tuple[str, Relationship] | None],
    target: str,
) -> list[tuple[str, str, Relationship]]:
    hops = []
    node_id = target
    while (entry := previous[node_id]) is not None:
        prev_id, rel = entry
        hops.append((prev_id, node_id, rel))
        node_id = prev_id
    hops.reverse()
    return hops


def shortest_path(
    graph: Graph,
    source: str,
    target: str,
    edge_types: Collection[str] | None = None,
    max_depth: int | None = None,
) -> list[str] | None:
    """Find the shortest chain of relationships between two people.

    Breadth-first and unweighted. Parent edges can be walked in either
    direction, so a child-to-ancestor query succeeds. Among equal-length
    paths the first discovered wins.

    Args:
        graph: Genealogy graph.
        source: Starting node ID.
        target: Ending node ID.
        edge_types: Optional set of edge types that may be walked.
        max_depth: Maximum number of hops (None = unbounded).

    Returns:
        List of node IDs from source to target, ``[source]`` when they are
        equal, or None if either node is absent, no path exists, or the
        path would exceed max_depth.
    """
    if source not in graph or target not in graph:
        return None
    if source == target:
        return [source]

    try:
        previous = _bfs_predecessors(graph, source, target, edge_types, max_depth)
    except TraversalLimitError:
        return None
    if previous is None:
        return None

    hops = _unwind(previous, target)
    return [source] + [to_id for _, to_id, _ in hops]


def connected_components(graph: Graph) -> list[set[str]]:
    """Partition all nodes into connected components.

    Every node appears in exactly one component; isolated nodes form
    single-node components. Components are ordered by their first node
    in load order.
    """
    if not len(graph):
        return []
    return [set(c) for c in nx.connected_components(graph.to_networkx())]


def neighborhood(
    graph: Graph,
    node_id: str,
    depth: int,
    edge_types: Collection[str] | None = None,
) -> Neighborhood:
    """Collect nodes and edges within ``depth`` hops of a node.

    ``depth=0`` returns just the center node. Unknown ids give an empty
    neighborhood.
    """
    result = Neighborhood(center=node_id, depth=depth)
    if node_id not in graph:
        return result

    result.nodes.add(node_id)
    current_level = {node_id}
    for _ in range(max(depth, 0)):
        next_level: set[str] = set()
        for current in graph.ordered(current_level):
            for neighbor_id, rel in graph.neighbors(current, edge_types):
                result.edges.add(rel.id)
                if neighbor_id not in result.nodes:
                    result.nodes.add(neighbor_id)
                    next_level.add(neighbor_id)
        if not next_level:
            break
        current_level = next_level

    return result


def parent_child_pairs(
    graph: Graph,
    parent_edge_types: Iterable[str] = DEFAULT_PARENT_TYPES,
    node_ids: Collection[str] | None = None,
) -> list[tuple[str, str]]:
    """Distinct (parent, child) pairs in edge load order.

    ``child``-typed edges point from child to parent and are reversed.
    Self loops are skipped.
    """
    types = set(parent_edge_types)
    seen: set[tuple[str, str]] = set()
    pairs = []
    for rel in graph.all_edges():
        if rel.type not in types:
            continue
        if rel.type in CHILD_TO_PARENT_TYPES:
            pair = (rel.target_id, rel.source_id)
        else:
            pair = (rel.source_id, rel.target_id)
        if pair[0] == pair[1] or pair in seen:
            continue
        if node_ids is not None and (pair[0] not in node_ids or pair[1] not in node_ids):
            continue
        seen.add(pair)
        pairs.append(pair)
    return pairs


def extract_hierarchy(
    graph: Graph,
    parent_edge_types: Iterable[str] = DEFAULT_PARENT_TYPES,
    node_ids: Collection[str] | None = None,
) -> dict[str, list[str]]:
    """Build a parent -> children map from parent-type edges.

    Tolerates cycles: each direct edge contributes once and nothing here
    recurses. Callers that descend the map must keep a visited set.

    Args:
        graph: Genealogy graph.
        parent_edge_types: Edge types that express parenthood.
        node_ids: Optional subset; edges leaving it are ignored.

    Returns:
        Dict mapping parent ID to its children in edge load order.
    """
    hierarchy: dict[str, list[str]] = {}
    for parent, child in parent_child_pairs(graph, parent_edge_types, node_ids):
        hierarchy.setdefault(parent, []).append(child)
    return hierarchy


def parents_of(
    graph: Graph,
    parent_edge_types: Iterable[str] = DEFAULT_PARENT_TYPES,
    node_ids: Collection[str] | None = None,
) -> dict[str, list[str]]:
    """Child -> parents map; the first parent listed is the primary one."""
    parents: dict[str, list[str]] = {}
    for parent, child in parent_child_pairs(graph, parent_edge_types, node_ids):
        parents.setdefault(child, []).append(parent)
    return parents


def find_relationship_path(
    graph: Graph,
    source: str,
    target: str,
    exclude_types: Collection[str] = (),
    max_depth: int = 10,
) -> RelationshipPath | None:
    """Find and describe the shortest relationship path between two people.

    Args:
        graph: Genealogy graph.
        source: Starting person ID.
        target: Ending person ID.
        exclude_types: Relationship types that may not be walked.
        max_depth: Maximum number of hops.

    Returns:
        RelationshipPath with typed steps and a description, or None.
    """
    if source not in graph or target not in graph:
        return None
    if source == target:
        return RelationshipPath(nodes=[source], description=describe_relationship(graph, []))

    edge_types = None
    if exclude_types:
        edge_types = {r.type for r in graph.all_edges()} - set(exclude_types)

    try:
        previous = _bfs_predecessors(graph, source, target, edge_types, max_depth)
    except TraversalLimitError:
        return None
    if previous is None:
        return None

    hops = _unwind(previous, target)
    steps = []
    for from_id, to_id, rel in hops:
        # Steps keep the edge's own orientation
        if rel.source_id == from_id:
            steps.append(PathStep(from_id=from_id, to_id=to_id, type=rel.type, edge_id=rel.id))
        else:
            steps.append(PathStep(from_id=to_id, to_id=from_id, type=rel.type, edge_id=rel.id))

    nodes = [source] + [to_id for _, to_id, _ in hops]
    return RelationshipPath(
        nodes=nodes, steps=steps, description=describe_relationship(graph, steps)
    )


_DIRECT_PHRASES = {
    "parent": "is the parent of",
    "child": "is the child of",
    "spouse": "is the spouse of",
    "sibling": "is the sibling of",
    "ancestor": "is an ancestor of",
    "descendant": "is a descendant of",
    "mentor": "is a mentor of",
    "disciple": "is a disciple of",
}


def describe_relationship(graph: Graph, steps: list[PathStep]) -> str:
    """Render a relationship path as a sentence.

    Example:
        "Abraham is the parent of Isaac", or for longer paths
        "Abraham is connected to Jacob through 2 relationships:
        Abraham (parent) Isaac → Isaac (parent) Jacob".
    """
    if not steps:
        return "No relationship found"

    def name(node_id: str) -> str:
        person = graph.get_node(node_id)
        return person.display_name if person else node_id

    if len(steps) == 1:
        step = steps[0]
        phrase = _DIRECT_PHRASES.get(step.type, f"is {step.type} to")
        return f"{name(step.from_id)} {phrase} {name(step.to_id)}"

    start = name(steps[0].from_id)
    end = name(steps[-1].to_id)
    hops = " → ".join(f"{name(s.from_id)} ({s.type}) {name(s.to_id)}" for s in steps)
    return f"{start} is connected to {end} through {len(steps)} relationships: {hops}"


def create_subgraph(
    graph: Graph,
    center_ids: Iterable[str],
    depth: int = 2,
    include_types: Collection[str] | None = None,
    exclusions: Collection[str] = (),
) -> Graph:
    """Extract the neighborhood of several people as a new Graph.

    Args:
        graph: Source graph.
        center_ids: People to center the extraction on (unknown ids ignored).
        depth: Hops to expand from each center.
        include_types: Optional set of edge types to follow and keep.
        exclusions: Node ids never included.

    Returns:
        A new Graph holding the collected people and the edges between them,
        both in the source graph's load order.
    """
    excluded = set(exclusions)
    collected: set[str] = set()
    for center in center_ids:
        if center not in graph or center in excluded:
            continue
        collected.add(center)
        current_level = {center}
        for _ in range(max(depth, 0)):
            next_level = set()
            for node_id in graph.ordered(current_level):
                for neighbor_id, _rel in graph.neighbors(node_id, include_types):
                    if neighbor_id in excluded or neighbor_id in collected:
                        continue
                    collected.add(neighbor_id)
                    next_level.add(neighbor_id)
            current_level = next_level

    nodes = [graph.require_node(n) for n in graph.ordered(collected)]
    edges = [
        rel
        for rel in graph.edges_within(collected)
        if include_types is None or rel.type in include_types
    ]
    return Graph(nodes, edges)
