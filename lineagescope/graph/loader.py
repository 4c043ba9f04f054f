"""Dataset loading: shape detection, field mapping and enrichment.

Two input shapes are accepted:

- ``{"nodes": [...], "links" | "edges" | "relationships": [...]}`` with
  ``source``/``target`` endpoints (node-link style).
- ``{"people": [...], "relationships": [...]}`` with ``fullName`` and
  ``from``/``to`` endpoints; ``bidirectional`` relationships gain a
  reciprocal edge.

When no relationship list is given, edges are derived from each person's
``parents`` list and ``spouse`` field.
"""

from collections.abc import Mapping
from typing import Any, Literal

from lineagescope.config import EngineSettings
from lineagescope.errors import ValidationError
from lineagescope.graph.generations import calculate_generations
from lineagescope.graph.model import SOURCE_KEYS, TARGET_KEYS, Graph, first_present
from lineagescope.graph.relations import reciprocal_type
from lineagescope.logging import log_operation, logger
from lineagescope.models.graph import Person

Shape = Literal["nodes", "people"]

_PERSON_KEYS = frozenset({
    "id", "name", "kind", "type", "generation", "era", "birth_year", "birthYear",
    "death_year", "deathYear", "gender", "fixed_x", "fx", "fixed_y", "fy",
})
_ATTRIBUTE_ALIASES = {"isKeyFigure": "is_key_figure"}
# Consumed while deriving relationships, never copied into attributes.
_STRUCTURAL_KEYS = frozenset({"parents", "spouse", "spouses", "children", "attributes"})
_SCALARS = (str, int, float, bool, type(None))
_ENDPOINT_KEYS = frozenset(SOURCE_KEYS + TARGET_KEYS)


def detect_shape(data: Any) -> Shape:
    """Identify which input shape a raw dataset uses.

    Raises:
        ValidationError: If the data is not an object with a node list.
    """
    if not isinstance(data, Mapping):
        raise ValidationError(f"dataset must be an object, got {type(data).__name__}")
    if isinstance(data.get("nodes"), list):
        return "nodes"
    if isinstance(data.get("people"), list):
        return "people"
    raise ValidationError("dataset needs a 'nodes' or 'people' list")


def normalize_person(raw: Any) -> Any:
    """Map a raw person record onto Person fields.

    ``fullName`` becomes ``name``; unknown scalar fields move into
    ``attributes``. Non-mapping input is returned untouched so that
    validation reports it.
    """
    if not isinstance(raw, Mapping):
        return raw

    record: dict[str, Any] = {}
    attributes: dict[str, Any] = dict(raw.get("attributes") or {})
    for key, value in raw.items():
        if key in _PERSON_KEYS:
            record[key] = value
        elif key == "fullName" or key in _STRUCTURAL_KEYS:
            continue
        elif isinstance(value, _SCALARS):
            attributes[_ATTRIBUTE_ALIASES.get(key, key)] = value
    if raw.get("fullName") and not raw.get("name"):
        record["name"] = raw["fullName"]
    record["attributes"] = attributes
    return record


def relationships_from_people(people: list[Any]) -> list[dict[str, Any]]:
    """Derive parent and spouse edges from ``parents`` / ``spouse`` fields."""
    edges: list[dict[str, Any]] = []
    spouse_pairs: set[frozenset[str]] = set()
    for raw in people:
        if not isinstance(raw, Mapping) or raw.get("id") is None:
            continue
        person_id = str(raw["id"])
        for parent_id in raw.get("parents") or []:
            edges.append({"source": str(parent_id), "target": person_id, "type": "parent"})

        spouses = raw.get("spouses") or ([raw["spouse"]] if raw.get("spouse") else [])
        for spouse_id in spouses:
            pair = frozenset((person_id, str(spouse_id)))
            if pair in spouse_pairs:
                continue
            spouse_pairs.add(pair)
            edges.append({"source": person_id, "target": str(spouse_id), "type": "spouse"})
    return edges


def normalize_relationships(relationships: Any) -> Any:
    """Map ``from``/``to`` records to edges, adding reciprocals where asked."""
    if not isinstance(relationships, list):
        return relationships

    edges: list[Any] = []
    for raw in relationships:
        if not isinstance(raw, Mapping):
            edges.append(raw)
            continue
        edge = dict(raw)
        edge.setdefault("source", raw.get("from"))
        edge.setdefault("target", raw.get("to"))
        edge.pop("from", None)
        edge.pop("to", None)
        edge.pop("bidirectional", None)
        edges.append(edge)

        if raw.get("bidirectional"):
            reverse = {k: v for k, v in edge.items() if k not in _ENDPOINT_KEYS}
            reverse["source"] = first_present(edge, TARGET_KEYS)
            reverse["target"] = first_present(edge, SOURCE_KEYS)
            reverse["type"] = reciprocal_type(str(edge.get("type") or "related"))
            if edge.get("id") is not None:
                reverse["id"] = f"{edge['id']}:reciprocal"
            edges.append(reverse)
    return edges


def enrich(graph: Graph, settings: EngineSettings) -> Graph:
    """Fill in generation, era, age and key-figure flags.

    Returns a new Graph; the input is left untouched.
    """
    generations = calculate_generations(graph, settings.generation)
    key_figures = set(settings.key_figures)

    people: list[Person] = []
    for person in graph.all_nodes():
        update: dict[str, Any] = {"generation": generations[person.id]}
        if person.era == settings.default_era:
            year = person.birth_year if person.birth_year is not None else person.death_year
            update["era"] = settings.era_for_year(year)

        attributes = dict(person.attributes)
        if person.birth_year is not None and person.death_year is not None:
            attributes.setdefault("age", abs(person.death_year - person.birth_year))
        attributes.setdefault("is_key_figure", person.id in key_figures)
        update["attributes"] = attributes
        people.append(person.model_copy(update=update))

    return Graph(people, graph.all_edges(), graph.load_report)


def load_dataset(
    data: Any,
    settings: EngineSettings | None = None,
    enrich_data: bool = True,
) -> Graph:
    """Load a raw dataset in either supported shape into a Graph.

    Args:
        data: Parsed JSON-like dataset.
        settings: Engine settings (era table, key figures, generation rule).
        enrich_data: Whether to derive generation, era, age and key figures.

    Returns:
        The loaded Graph; ``graph.load_report`` records dropped edges.

    Raises:
        ValidationError: For non-object input or malformed records.
    """
    settings = settings or EngineSettings()
    shape = detect_shape(data)

    with log_operation("load_dataset", {"shape": shape}) as timing:
        if shape == "people":
            raw_people = data["people"]
            raw_edges = data.get("relationships")
        else:
            raw_people = data["nodes"]
            raw_edges = data.get("links", data.get("edges", data.get("relationships")))

        if raw_edges is None:
            raw_edges = relationships_from_people(raw_people)
        else:
            raw_edges = normalize_relationships(raw_edges)

        nodes = [normalize_person(p) for p in raw_people]
        graph = Graph.load(nodes, raw_edges)
        if enrich_data:
            graph = enrich(graph, settings)
        graph.load_report = graph.load_report.model_copy(update={"shape": shape})

    logger.info(
        "Loaded %d people and %d relationships (%d dropped) in %.1fms",
        graph.load_report.node_count,
        graph.load_report.edge_count,
        graph.load_report.dropped_edges,
        timing.elapsed_ms,
    )
    return graph


def fallback_dataset() -> dict[str, Any]:
    """Minimal first-family dataset used when no data source is available."""
    return {
        "nodes": [
            {"id": "adam", "name": "Adam", "gender": "male", "birthYear": -4000,
             "deathYear": -3070, "type": "patriarch", "era": "antediluvian", "generation": 1},
            {"id": "eve", "name": "Eve", "gender": "female", "birthYear": -4000,
             "deathYear": -3070, "type": "matriarch", "era": "antediluvian", "generation": 1},
            {"id": "cain", "name": "Cain", "gender": "male", "birthYear": -3970,
             "deathYear": -3000, "type": "firstborn", "era": "antediluvian", "generation": 2},
            {"id": "abel", "name": "Abel", "gender": "male", "birthYear": -3968,
             "deathYear": -3950, "type": "victim", "era": "antediluvian", "generation": 2},
            {"id": "seth", "name": "Seth", "gender": "male", "birthYear": -3870,
             "deathYear": -2958, "type": "patriarch", "era": "antediluvian", "generation": 2},
        ],
        "links": [
            {"source": "adam", "target": "eve", "type": "spouse"},
            {"source": "adam", "target": "cain", "type": "parent"},
            {"source": "eve", "target": "cain", "type": "parent"},
            {"source": "adam", "target": "abel", "type": "parent"},
            {"source": "eve", "target": "abel", "type": "parent"},
            {"source": "adam", "target": "seth", "type": "parent"},
            {"source": "eve", "target": "seth", "type": "parent"},
            {"source": "cain", "target": "abel", "type": "sibling"},
            {"source": "cain", "target": "seth", "type": "sibling"},
            {"source": "abel", "target": "seth", "type": "sibling"},
        ],
        "metadata": {
            "title": "Minimal Biblical Genealogy",
            "description": "A minimal dataset of the first biblical family",
            "source": "Genesis 4-5",
            "is_fallback": True,
        },
    }
