"""Canonical in-memory genealogy graph.

Holds the node and edge lists plus derived indices (id -> Person,
id -> incident edge ids). Indices are rebuilt wholesale after every
structural change and a revision counter is bumped so that layout caches
can tell stale entries apart.
"""

from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Any

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from lineagescope.errors import NotFoundError, ValidationError
from lineagescope.graph.relations import default_weight
from lineagescope.logging import logger
from lineagescope.models.graph import DroppedEdge, LoadReport, Person, Relationship

SOURCE_KEYS = ("source_id", "sourceId", "source", "from")
TARGET_KEYS = ("target_id", "targetId", "target", "to")


def first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _endpoint_id(value: Any) -> str | None:
    """Normalize an edge endpoint that may be an id or a node-like object."""
    if value is None:
        return None
    if isinstance(value, Person):
        return value.id
    if isinstance(value, Mapping):
        value = value.get("id")
        return None if value is None else str(value)
    return str(value)


def _format_pydantic_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "value"
        parts.append(f"{loc}: {err['msg']}")
    return ", ".join(parts)


def coerce_people(nodes: Any) -> list[Person]:
    """Validate raw node records into Person models.

    Raises:
        ValidationError: If the input is not a list of objects, a node lacks
            an id, ids collide, or a field is malformed. All problems found
            are collected on ``problems``.
    """
    if isinstance(nodes, (str, bytes, Mapping)) or not isinstance(nodes, Iterable):
        raise ValidationError("nodes must be a list of objects")

    people: list[Person] = []
    problems: list[str] = []
    seen: set[str] = set()

    for i, raw in enumerate(nodes):
        if isinstance(raw, Person):
            person = raw
        elif isinstance(raw, Mapping):
            raw_id = raw.get("id")
            if raw_id is None or str(raw_id) == "":
                problems.append(f"node[{i}]: missing id")
                continue
            record = dict(raw)
            record["id"] = str(raw_id)
            try:
                person = Person.model_validate(record)
            except PydanticValidationError as e:
                problems.append(f"node[{i}] ({raw_id}): {_format_pydantic_error(e)}")
                continue
        else:
            problems.append(f"node[{i}]: expected an object, got {type(raw).__name__}")
            continue

        if person.id in seen:
            problems.append(f"duplicate node id '{person.id}'")
            continue
        seen.add(person.id)
        people.append(person)

    if problems:
        raise ValidationError("invalid node data", problems)
    return people


def coerce_relationships(
    edges: Any,
    known_ids: Collection[str],
) -> tuple[list[Relationship], list[DroppedEdge]]:
    """Validate raw edge records, dropping those with unresolved endpoints.

    Endpoints may be given as ids or as node-like objects; both are
    normalized to plain ids. Missing edge ids are generated from the
    endpoints and type, with a numeric suffix on collision.

    Returns:
        Tuple of (kept relationships, dropped edge details).

    Raises:
        ValidationError: If the input is not a list of objects or a field
            such as ``weight`` is malformed.
    """
    if edges is None:
        return [], []
    if isinstance(edges, (str, bytes, Mapping)) or not isinstance(edges, Iterable):
        raise ValidationError("edges must be a list of objects")

    kept: list[Relationship] = []
    dropped: list[DroppedEdge] = []
    problems: list[str] = []
    used_ids: set[str] = set()

    for i, raw in enumerate(edges):
        if isinstance(raw, Relationship):
            rel = raw
        elif isinstance(raw, Mapping):
            source = _endpoint_id(first_present(raw, SOURCE_KEYS))
            target = _endpoint_id(first_present(raw, TARGET_KEYS))
            rel_type = str(raw.get("type") or "related")
            edge_id = raw.get("id")
            if edge_id is None:
                edge_id = f"{source}->{target}:{rel_type}"
            edge_id = str(edge_id)

            missing = [
                endpoint
                for endpoint in (source, target)
                if endpoint is None or endpoint not in known_ids
            ]
            if missing:
                dropped.append(
                    DroppedEdge(edge_id=edge_id, missing=[m or "<none>" for m in missing])
                )
                continue

            record = {
                "id": edge_id,
                "source_id": source,
                "target_id": target,
                "type": rel_type,
                "weight": raw.get("weight", default_weight(rel_type)),
                "description": raw.get("description"),
            }
            try:
                rel = Relationship.model_validate(record)
            except PydanticValidationError as e:
                problems.append(f"edge[{i}] ({edge_id}): {_format_pydantic_error(e)}")
                continue
        else:
            problems.append(f"edge[{i}]: expected an object, got {type(raw).__name__}")
            continue

        if rel.source_id not in known_ids or rel.target_id not in known_ids:
            missing = [e for e in (rel.source_id, rel.target_id) if e not in known_ids]
            dropped.append(DroppedEdge(edge_id=rel.id, missing=missing))
            continue

        if rel.id in used_ids:
            suffix = 2
            while f"{rel.id}#{suffix}" in used_ids:
                suffix += 1
            rel = rel.model_copy(update={"id": f"{rel.id}#{suffix}"})
        used_ids.add(rel.id)
        kept.append(rel)

    if problems:
        raise ValidationError("invalid edge data", problems)
    return kept, dropped


class Graph:
    """Genealogy graph with O(1) id lookup and edge-ordered adjacency.

    Example:
        >>> links = [{"source": "a", "target": "b", "type": "parent"}]
        >>> g = Graph.load([{"id": "a"}, {"id": "b"}], links)
        >>> [n for n, _ in g.neighbors("b")]
        ['a']
    """

    def __init__(
        self,
        nodes: Iterable[Person] = (),
        edges: Iterable[Relationship] = (),
        report: LoadReport | None = None,
    ) -> None:
        self._nodes: list[Person] = list(nodes)
        self._edges: list[Relationship] = list(edges)
        self._node_index: dict[str, Person] = {}
        self._node_order: dict[str, int] = {}
        self._edge_index: dict[str, Relationship] = {}
        self._adjacency: dict[str, list[str]] = {}
        self.revision = 0
        self.load_report = report or LoadReport(
            node_count=len(self._nodes), edge_count=len(self._edges)
        )
        self._rebuild()

    @classmethod
    def load(cls, nodes: Any, edges: Any = ()) -> "Graph":
        """Build a graph from raw node and edge records.

        Edges whose endpoints do not resolve are dropped and counted on
        ``load_report``; they never raise.

        Args:
            nodes: List of Person models or mappings.
            edges: List of Relationship models or mappings.

        Returns:
            A new Graph.

        Raises:
            ValidationError: For malformed node or edge records.
        """
        people = coerce_people(nodes)
        known = {p.id for p in people}
        relationships, dropped = coerce_relationships(edges, known)

        report = LoadReport(
            node_count=len(people),
            edge_count=len(relationships),
            dropped_edges=len(dropped),
            dropped_edge_details=dropped,
        )
        if dropped:
            message = f"Dropped {len(dropped)} relationship(s) with unresolved endpoints"
            report.warnings.append(message)
            logger.warning(
                "%s: %s",
                message,
                ", ".join(d.edge_id for d in dropped[:5]) + (" ..." if len(dropped) > 5 else ""),
            )
        return cls(people, relationships, report)

    def _rebuild(self) -> None:
        self._node_index = {}
        self._node_order = {}
        for i, person in enumerate(self._nodes):
            self._node_index[person.id] = person
            self._node_order[person.id] = i

        self._edge_index = {}
        self._adjacency = {person.id: [] for person in self._nodes}
        for rel in self._edges:
            self._edge_index[rel.id] = rel
            self._adjacency[rel.source_id].append(rel.id)
            if rel.target_id != rel.source_id:
                self._adjacency[rel.target_id].append(rel.id)

    def _structure_changed(self) -> None:
        self._rebuild()
        self.revision += 1
        self.load_report = self.load_report.model_copy(
            update={"node_count": len(self._nodes), "edge_count": len(self._edges)}
        )

    # -- queries ---------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._node_index

    def get_node(self, node_id: str) -> Person | None:
        return self._node_index.get(node_id)

    def require_node(self, node_id: str) -> Person:
        person = self._node_index.get(node_id)
        if person is None:
            raise NotFoundError(f"Node not found: {node_id}", node_id)
        return person

    def get_edge(self, edge_id: str) -> Relationship | None:
        return self._edge_index.get(edge_id)

    def index_of(self, node_id: str) -> int:
        """Position of a node in load order (used for deterministic ordering)."""
        return self._node_order[node_id]

    def neighbors(
        self,
        node_id: str,
        edge_types: Collection[str] | None = None,
    ) -> list[tuple[str, Relationship]]:
        """List (neighbor id, edge) pairs of a node in edge load order.

        Edges are treated as undirected. Unknown ids yield an empty list.

        Args:
            node_id: Node to inspect.
            edge_types: Optional set of edge types to keep.
        """
        result = []
        for edge_id in self._adjacency.get(node_id, ()):
            rel = self._edge_index[edge_id]
            if edge_types is not None and rel.type not in edge_types:
                continue
            result.append((rel.other(node_id), rel))
        return result

    def incident_edges(self, node_id: str) -> list[Relationship]:
        return [self._edge_index[e] for e in self._adjacency.get(node_id, ())]

    def degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, ()))

    def all_nodes(self) -> tuple[Person, ...]:
        return tuple(self._nodes)

    def all_edges(self) -> tuple[Relationship, ...]:
        return tuple(self._edges)

    def node_ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self._nodes)

    def endpoints(self, rel: Relationship) -> tuple[Person, Person]:
        """Resolve an edge's endpoints to Person snapshots."""
        return self._node_index[rel.source_id], self._node_index[rel.target_id]

    def edges_within(self, node_ids: Collection[str]) -> list[Relationship]:
        """Edges whose endpoints are both in ``node_ids``, in load order."""
        return [
            rel
            for rel in self._edges
            if rel.source_id in node_ids and rel.target_id in node_ids
        ]

    def ordered(self, node_ids: Iterable[str]) -> list[str]:
        """Return known ids from ``node_ids`` sorted into load order."""
        return sorted(
            (n for n in set(node_ids) if n in self._node_order),
            key=self._node_order.__getitem__,
        )

    def to_networkx(
        self,
        node_ids: Collection[str] | None = None,
        edge_types: Collection[str] | None = None,
    ) -> nx.MultiGraph:
        """Convert (a subset of) the graph to an undirected NetworkX multigraph.

        Nodes keep load order; edges are keyed by edge id and carry ``type``
        and ``weight``.
        """
        G = nx.MultiGraph()
        for person in self._nodes:
            if node_ids is None or person.id in node_ids:
                G.add_node(
                    person.id,
                    name=person.display_name,
                    generation=person.generation,
                    era=person.era,
                )
        for rel in self._edges:
            if edge_types is not None and rel.type not in edge_types:
                continue
            if rel.source_id in G and rel.target_id in G:
                G.add_edge(
                    rel.source_id, rel.target_id, key=rel.id, type=rel.type, weight=rel.weight
                )
        return G

    # -- structural mutation ----------------------------------------------

    def add_node(self, node: Person | Mapping[str, Any]) -> Person:
        (person,) = coerce_people([node])
        if person.id in self._node_index:
            raise ValidationError("invalid node data", [f"duplicate node id '{person.id}'"])
        self._nodes.append(person)
        self._structure_changed()
        return person

    def add_edge(self, edge: Relationship | Mapping[str, Any]) -> Relationship:
        kept, dropped = coerce_relationships([edge], self._node_index)
        if dropped:
            missing = dropped[0].missing[0]
            raise NotFoundError(f"Edge endpoint not found: {missing}", missing)
        rel = kept[0]
        if rel.id in self._edge_index:
            raise ValidationError("invalid edge data", [f"duplicate edge id '{rel.id}'"])
        self._edges.append(rel)
        self._structure_changed()
        return rel

    def remove_node(self, node_id: str) -> None:
        self.require_node(node_id)
        self._nodes = [p for p in self._nodes if p.id != node_id]
        self._edges = [
            r for r in self._edges if r.source_id != node_id and r.target_id != node_id
        ]
        self._structure_changed()

    def remove_edge(self, edge_id: str) -> None:
        if edge_id not in self._edge_index:
            raise NotFoundError(f"Edge not found: {edge_id}", edge_id)
        self._edges = [r for r in self._edges if r.id != edge_id]
        self._structure_changed()
