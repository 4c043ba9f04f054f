"""Dataset export: JSON, CSV tables and a simplified GEDCOM 5.5.1 dump."""

import csv
import io
import json
from typing import Any

from lineagescope.errors import ValidationError
from lineagescope.graph.model import Graph
from lineagescope.graph.traversal import parents_of
from lineagescope.models.graph import Person

EXPORT_FORMATS: tuple[str, ...] = ("json", "csv", "gedcom")

PEOPLE_COLUMNS = ("id", "name", "birth_year", "death_year", "gender", "type", "era", "generation")
RELATIONSHIP_COLUMNS = ("source", "target", "type", "description")

GEDCOM_HEADER = (
    "0 HEAD\n1 GEDC\n2 VERS 5.5.1\n1 CHAR UTF-8\n0 @SUBM@ SUBM\n1 NAME {submitter}\n"
)


def to_dict(graph: Graph) -> dict[str, Any]:
    """Canonical dump that ``load_dataset`` accepts back."""
    return {
        "nodes": [p.model_dump(mode="json") for p in graph.all_nodes()],
        "links": [r.model_dump(mode="json") for r in graph.all_edges()],
    }


def to_json(graph: Graph, indent: int | None = 2) -> str:
    return json.dumps(to_dict(graph), indent=indent)


def _table(columns: tuple[str, ...], rows: list[list[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(["" if v is None else v for v in row] for row in rows)
    return buffer.getvalue()


def to_csv(graph: Graph) -> dict[str, str]:
    """Export people and relationships as two CSV tables.

    Returns:
        Dict with ``people`` and ``relationships`` CSV text.
    """
    people = [
        [p.id, p.name, p.birth_year, p.death_year, p.gender, p.kind, p.era, p.generation]
        for p in graph.all_nodes()
    ]
    relationships = [
        [r.source_id, r.target_id, r.type, r.description] for r in graph.all_edges()
    ]
    return {
        "people": _table(PEOPLE_COLUMNS, people),
        "relationships": _table(RELATIONSHIP_COLUMNS, relationships),
    }


def _is_male(person: Person) -> bool:
    return (person.gender or "").lower().startswith("m")


class _Family:
    def __init__(self, family_id: str) -> None:
        self.id = family_id
        self.husband: str | None = None
        self.wife: str | None = None
        self.children: list[str] = []

    def add_partner(self, person: Person) -> None:
        if _is_male(person) and self.husband is None:
            self.husband = person.id
        elif self.wife is None:
            self.wife = person.id
        else:
            self.husband = person.id

    def members(self) -> set[str]:
        return {m for m in (self.husband, self.wife) if m is not None}


def _families(graph: Graph) -> list[_Family]:
    """Group spouse pairs and parent/child links into GEDCOM families.

    Each spouse link opens a family. A child joins the family of its two
    parents when they are a couple, otherwise the first family of its
    primary parent (opening a single-parent family if needed).
    """
    families: list[_Family] = []

    def open_family(*partners: Person) -> _Family:
        family = _Family(f"F{len(families) + 1}")
        for person in partners:
            family.add_partner(person)
        families.append(family)
        return family

    for rel in graph.all_edges():
        if rel.type == "spouse" and rel.source_id != rel.target_id:
            source, target = graph.endpoints(rel)
            if _is_male(target) and not _is_male(source):
                source, target = target, source
            open_family(source, target)

    for child_id, parent_ids in parents_of(graph, ("parent", "child")).items():
        family = None
        if len(parent_ids) >= 2:
            couple = set(parent_ids[:2])
            family = next((f for f in families if f.members() == couple), None)
        if family is None:
            primary = parent_ids[0]
            family = next((f for f in families if primary in f.members()), None)
        if family is None:
            family = open_family(graph.require_node(parent_ids[0]))
        if child_id not in family.children:
            family.children.append(child_id)

    return families


def to_gedcom(graph: Graph, submitter: str = "lineagescope") -> str:
    """Simplified GEDCOM 5.5.1: INDI records, then FAM records, then TRLR."""
    lines = [GEDCOM_HEADER.format(submitter=submitter)]
    for person in graph.all_nodes():
        lines.append(f"0 @{person.id}@ INDI\n1 NAME {person.name or 'Unknown'}\n")
        if person.birth_year is not None:
            lines.append(f"1 BIRT\n2 DATE {person.birth_year}\n")
        if person.death_year is not None:
            lines.append(f"1 DEAT\n2 DATE {person.death_year}\n")
        if person.gender:
            lines.append(f"1 SEX {person.gender[0].upper()}\n")
        note = person.attributes.get("description")
        if note:
            lines.append(f"1 NOTE {note}\n")

    for family in _families(graph):
        lines.append(f"0 @{family.id}@ FAM\n")
        if family.husband:
            lines.append(f"1 HUSB @{family.husband}@\n")
        if family.wife:
            lines.append(f"1 WIFE @{family.wife}@\n")
        lines.extend(f"1 CHIL @{child}@\n" for child in family.children)

    lines.append("0 TRLR\n")
    return "".join(lines)


def export_graph(graph: Graph, fmt: str = "json") -> str | dict[str, str]:
    """Export a graph in one of EXPORT_FORMATS.

    Raises:
        ValidationError: For an unknown format.
    """
    fmt = fmt.lower()
    if fmt == "json":
        return to_json(graph)
    if fmt == "csv":
        return to_csv(graph)
    if fmt == "gedcom":
        return to_gedcom(graph)
    raise ValidationError(
        f"Unknown export format '{fmt}' (expected one of {', '.join(EXPORT_FORMATS)})"
    )
