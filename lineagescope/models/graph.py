"""Data models for genealogical graphs and layout output.

People and relationships are frozen Pydantic models so that snapshots handed
to traversal and layout code cannot mutate the canonical graph. Positions
never live on a Person; they exist only in LayoutResult.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Scalar = str | int | float | bool | None


class Person(BaseModel):
    """A node in the genealogy graph (usually a person)."""

    id: str = Field(min_length=1, description="Unique identifier (e.g., 'abraham')")
    name: str = Field(default="", description="Display name")
    kind: str = Field(
        default="person",
        alias="type",
        description="Node kind or role (e.g., 'person', 'patriarch', 'location')",
    )
    generation: int | None = Field(default=None, description="Generation number")
    era: str = Field(default="unknown", description="Historical era id")
    birth_year: int | None = Field(
        default=None, alias="birthYear", description="Birth year (negative = BCE)"
    )
    death_year: int | None = Field(
        default=None, alias="deathYear", description="Death year (negative = BCE)"
    )
    gender: str | None = Field(default=None, description="Gender, when known")
    fixed_x: float | None = Field(default=None, alias="fx", description="Pinned x")
    fixed_y: float | None = Field(default=None, alias="fy", description="Pinned y")
    attributes: dict[str, Scalar] = Field(
        default_factory=dict, description="Free-form scalar attributes"
    )

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_pinned(self) -> bool:
        return self.fixed_x is not None and self.fixed_y is not None

    def value(self, field: str) -> Scalar:
        """Look up a field by name, falling back to ``attributes``."""
        if field in Person.model_fields:
            return getattr(self, field)
        return self.attributes.get(field)


class Relationship(BaseModel):
    """A typed edge between two people, stored by id only."""

    id: str = Field(min_length=1, description="Unique edge identifier")
    source_id: str = Field(alias="source", description="Source person ID")
    target_id: str = Field(alias="target", description="Target person ID")
    type: str = Field(default="related", description="Relationship type (e.g., 'parent')")
    weight: float = Field(default=1.0, ge=0, description="Link weight for layout forces")
    description: str | None = Field(default=None, description="Optional free text")

    model_config = {"populate_by_name": True, "frozen": True}

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite ``node_id``."""
        return self.target_id if self.source_id == node_id else self.source_id


class DroppedEdge(BaseModel):
    """An edge discarded at load time because an endpoint did not resolve."""

    edge_id: str = Field(description="Edge identifier (generated if absent)")
    missing: list[str] = Field(description="Endpoint ids that did not resolve")


class LoadReport(BaseModel):
    """Summary of a dataset load."""

    shape: Literal["nodes", "people", "direct"] = Field(
        default="direct", description="Input shape the loader detected"
    )
    node_count: int = Field(default=0, description="People loaded")
    edge_count: int = Field(default=0, description="Relationships kept")
    dropped_edges: int = Field(default=0, description="Relationships dropped")
    dropped_edge_details: list[DroppedEdge] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class Position(BaseModel):
    """A 2D coordinate produced by a layout strategy."""

    x: float
    y: float

    model_config = {"frozen": True}


class LayoutResult(BaseModel):
    """Positions computed for one (layout type, options, node set) triple."""

    layout_type: str = Field(description="Strategy that produced the positions")
    options_signature: str = Field(description="Canonical JSON of the options")
    node_signature: tuple[str, ...] = Field(description="Sorted ids of laid-out nodes")
    positions: dict[str, Position] = Field(default_factory=dict)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(tz=None))
    warnings: list[str] = Field(default_factory=list)
    fallback_from: str | None = Field(
        default=None, description="Requested strategy when a fallback ran instead"
    )
    elapsed_ms: float = Field(default=0.0, ge=0, description="Time spent computing positions")

    def snapshot(self) -> "LayoutResult":
        """Copy with independent containers, safe to hand to callers."""
        return self.model_copy(
            update={"positions": dict(self.positions), "warnings": list(self.warnings)}
        )

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {node_id: {"x": p.x, "y": p.y} for node_id, p in self.positions.items()}


class Neighborhood(BaseModel):
    """Nodes and edges within a bounded number of hops of a center node."""

    center: str
    depth: int
    nodes: set[str] = Field(default_factory=set)
    edges: set[str] = Field(default_factory=set)


class PathStep(BaseModel):
    """One hop of a relationship path, oriented along the walk."""

    from_id: str
    to_id: str
    type: str
    edge_id: str


class RelationshipPath(BaseModel):
    """A shortest relationship path between two people."""

    nodes: list[str] = Field(description="Node ids from start to end")
    steps: list[PathStep] = Field(default_factory=list)
    description: str = Field(default="", description="Human readable description")

    @property
    def length(self) -> int:
        return len(self.steps)


class SelectionState(BaseModel):
    """Ephemeral view state owned by the selection manager."""

    selected_ids: set[str] = Field(default_factory=set)
    highlighted_ids: set[str] = Field(default_factory=set)
    highlighted_edge_ids: set[str] = Field(default_factory=set)
    expanded_ids: set[str] = Field(default_factory=set)
    collapsed_ids: set[str] = Field(default_factory=set)
    hovered_id: str | None = None
