"""Generation numbers for people in a genealogy graph.

Precedence for each person: an explicit ``generation`` in the data, then one
derived from ``birth_year``, then the first resolved parent's generation
plus one, then 0.
"""

from collections import deque
from collections.abc import Iterable, Mapping

from lineagescope.config import GenerationSettings
from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import extract_hierarchy, parents_of
from lineagescope.logging import logger
from lineagescope.models.graph import Person

GENERATION_EDGE_TYPES: tuple[str, ...] = ("parent", "child")


def _intrinsic_generation(person: Person, settings: GenerationSettings) -> int | None:
    if person.generation is not None:
        return person.generation
    if person.birth_year is not None:
        return settings.from_birth_year(person.birth_year)
    return None


def calculate_generation(
    person: Person,
    graph: Graph,
    known: Mapping[str, int],
    settings: GenerationSettings | None = None,
    parent_edge_types: Iterable[str] = GENERATION_EDGE_TYPES,
) -> int:
    """Generation of a single person given already-known generations.

    Args:
        person: Person to resolve.
        graph: Graph the person belongs to.
        known: Generations resolved so far.
        settings: Birth-year derivation settings.
        parent_edge_types: Edge types that express parenthood.

    Returns:
        The generation number (0 when nothing is known).
    """
    settings = settings or GenerationSettings()
    intrinsic = _intrinsic_generation(person, settings)
    if intrinsic is not None:
        return intrinsic
    for parent_id in parents_of(graph, parent_edge_types).get(person.id, []):
        if parent_id in known:
            return known[parent_id] + 1
    return 0


def calculate_generations(
    graph: Graph,
    settings: GenerationSettings | None = None,
    parent_edge_types: Iterable[str] = GENERATION_EDGE_TYPES,
) -> dict[str, int]:
    """Resolve generations for every node, parents before children.

    Nodes with an intrinsic generation (explicit or birth-year derived) and
    nodes without parents seed a FIFO queue in load order; each resolved
    node then resolves its still-unknown children. Parent cycles leave
    nodes unresolved: the first such node in load order is set to 0 with a
    warning and propagation continues from there.

    Returns:
        Dict mapping node ID to generation, in load order.
    """
    settings = settings or GenerationSettings()
    parent_edge_types = tuple(parent_edge_types)
    parents = parents_of(graph, parent_edge_types)
    children = extract_hierarchy(graph, parent_edge_types)

    generations: dict[str, int] = {}
    queue: deque[str] = deque()

    for person in graph.all_nodes():
        intrinsic = _intrinsic_generation(person, settings)
        if intrinsic is not None:
            generations[person.id] = intrinsic
            queue.append(person.id)
        elif person.id not in parents:
            generations[person.id] = 0
            queue.append(person.id)

    while True:
        while queue:
            node_id = queue.popleft()
            for child_id in children.get(node_id, []):
                if child_id not in generations:
                    generations[child_id] = generations[node_id] + 1
                    queue.append(child_id)

        unresolved = [n for n in graph.node_ids() if n not in generations]
        if not unresolved:
            break
        breaker = unresolved[0]
        logger.warning(
            "Parent cycle leaves %d node(s) without a generation; setting %s to 0",
            len(unresolved),
            breaker,
        )
        generations[breaker] = 0
        queue.append(breaker)

    return {n: generations[n] for n in graph.node_ids()}


def with_generations(graph: Graph, settings: GenerationSettings | None = None) -> Graph:
    """Return a new Graph whose people all carry a generation number."""
    generations = calculate_generations(graph, settings)
    nodes = [
        p
        if p.generation == generations[p.id]
        else p.model_copy(update={"generation": generations[p.id]})
        for p in graph.all_nodes()
    ]
    return Graph(nodes, graph.all_edges(), graph.load_report)
