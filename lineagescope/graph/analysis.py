"""Dataset statistics, search and integrity checks."""

import re
from collections.abc import Collection, Mapping, Sequence
from typing import Any

import networkx as nx

from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import parent_child_pairs
from lineagescope.models.graph import Person, Relationship

COLOR_SCHEMES: dict[str, tuple[str, ...]] = {
    "standard": (
        "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
        "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
    ),
    "pastel": (
        "#c6dbef", "#fdd0a2", "#c7e9c0", "#fcbba1", "#dadaeb",
        "#e6d8c9", "#fde0ef", "#d9d9d9", "#ffffcc", "#ccffff",
    ),
    "biblical": (
        "#CD853F", "#8B4513", "#BC8F8F", "#F4A460", "#DAA520",
        "#B8860B", "#D2B48C", "#BDB76B", "#6B8E23", "#556B2F",
    ),
}


def compute_statistics(graph: Graph) -> dict[str, Any]:
    """Summarize a loaded dataset.

    Args:
        graph: Genealogy graph.

    Returns:
        Dict with counts, the distinct generations, eras, kinds and
        relationship types, key figure count, average connections, density,
        the longest-lived person and the most connected person.
    """
    people = graph.all_nodes()
    n = len(people)
    stats: dict[str, Any] = {
        "node_count": n,
        "link_count": len(graph.all_edges()),
        "generations": sorted({p.generation for p in people if p.generation is not None}),
        "eras": list(dict.fromkeys(p.era for p in people if p.era)),
        "kinds": list(dict.fromkeys(p.kind for p in people)),
        "relationship_types": list(dict.fromkeys(r.type for r in graph.all_edges())),
        "key_figures": sum(1 for p in people if p.attributes.get("is_key_figure")),
        "avg_connections": 0.0,
        "connectivity_density": 0.0,
        "longest_life": None,
        "most_connected": None,
    }
    if not n:
        return stats

    degrees = {p.id: graph.degree(p.id) for p in people}
    stats["avg_connections"] = sum(degrees.values()) / n
    if n > 1:
        stats["connectivity_density"] = len(graph.all_edges()) / (n * (n - 1) / 2)

    longest: tuple[int, Person] | None = None
    for person in people:
        if person.birth_year is None or person.death_year is None:
            continue
        age = person.death_year - person.birth_year
        if longest is None or age > longest[0]:
            longest = (age, person)
    if longest is not None:
        age, person = longest
        stats["longest_life"] = {"id": person.id, "name": person.display_name, "age": age}

    top = max(people, key=lambda p: degrees[p.id])
    if degrees[top.id] > 0:
        stats["most_connected"] = {
            "id": top.id,
            "name": top.display_name,
            "connections": degrees[top.id],
        }
    return stats


def search_people(
    graph: Graph,
    query: str,
    fields: Sequence[str] = ("name", "id"),
    exact: bool = False,
    case_sensitive: bool = False,
    limit: int = 20,
) -> list[Person]:
    """Find people whose fields match a text query, in load order.

    Args:
        graph: Genealogy graph.
        query: Text to look for.
        fields: Person fields or attribute names to search.
        exact: Require the whole field to equal the query.
        case_sensitive: Compare case-sensitively.
        limit: Maximum number of results.
    """
    if not query:
        return []
    needle = query if case_sensitive else query.lower()

    matches = []
    for person in graph.all_nodes():
        for field in fields:
            value = person.value(field)
            if value is None:
                continue
            text = str(value) if case_sensitive else str(value).lower()
            if (exact and text == needle) or (not exact and needle in text):
                matches.append(person)
                break
        if len(matches) >= limit:
            break
    return matches


def people_by_era(graph: Graph, era: str) -> list[Person]:
    return [p for p in graph.all_nodes() if p.era == era]


def _matches(value: Any, expected: Any) -> bool:
    if isinstance(expected, re.Pattern):
        return value is not None and expected.search(str(value)) is not None
    if isinstance(expected, (list, tuple, set, frozenset)):
        return value in expected
    return value == expected


def find_nodes(graph: Graph, query: Mapping[str, Any]) -> list[Person]:
    """People matching every key of ``query``.

    Values may be a plain value (equality), a collection (any of) or a
    compiled regular expression (searched in the string form). ``None``
    values are ignored.
    """
    conditions = {k: v for k, v in query.items() if v is not None}
    result = []
    for person in graph.all_nodes():
        if all(
            (key in Person.model_fields or key in person.attributes)
            and _matches(person.value(key), expected)
            for key, expected in conditions.items()
        ):
            result.append(person)
    return result


def find_links(graph: Graph, query: Mapping[str, Any]) -> list[Relationship]:
    """Relationships matching every key of ``query``.

    ``source`` and ``target`` are accepted as aliases of the id fields.
    """
    aliases = {"source": "source_id", "target": "target_id"}
    conditions = {aliases.get(k, k): v for k, v in query.items() if v is not None}
    return [
        rel
        for rel in graph.all_edges()
        if all(
            key in Relationship.model_fields and _matches(getattr(rel, key), expected)
            for key, expected in conditions.items()
        )
    ]


def integrity_report(
    graph: Graph,
    parent_edge_types: Collection[str] = ("parent", "child"),
) -> dict[str, Any]:
    """Check a loaded graph for data problems.

    Reports edges dropped at load time, self loops, parent cycles,
    people with no relationships and children with more than two parents.
    """
    parent_graph = nx.DiGraph()
    parent_graph.add_nodes_from(graph.node_ids())
    parent_counts: dict[str, int] = {}
    for parent, child in parent_child_pairs(graph, parent_edge_types):
        parent_graph.add_edge(parent, child)
        parent_counts[child] = parent_counts.get(child, 0) + 1

    cycles = [sorted(c) for c in nx.simple_cycles(parent_graph)]
    report = graph.load_report
    return {
        "dropped_edges": report.dropped_edges,
        "dropped_edge_details": [d.model_dump() for d in report.dropped_edge_details],
        "self_loops": [r.id for r in graph.all_edges() if r.source_id == r.target_id],
        "parent_cycles": cycles,
        "isolated": [n for n in graph.node_ids() if graph.degree(n) == 0],
        "excess_parents": sorted(c for c, count in parent_counts.items() if count > 2),
        "ok": not report.dropped_edges and not cycles,
    }


def category_colors(categories: Sequence[str], scheme: str = "biblical") -> dict[str, str]:
    """Assign a color to each category, cycling through the scheme's palette."""
    colors = COLOR_SCHEMES.get(scheme, COLOR_SCHEMES["standard"])
    return {category: colors[i % len(colors)] for i, category in enumerate(categories)}
