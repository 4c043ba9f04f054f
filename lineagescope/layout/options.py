"""Per-strategy layout options.

Options are frozen Pydantic models. Their canonical JSON (sorted keys) is
the options signature used as part of the layout cache key, so two option
objects with equal values always hit the same cache entry.
"""

import json
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from lineagescope.errors import LayoutError


class LayoutOptions(BaseModel):
    """Options shared by every strategy."""

    width: float | None = Field(default=None, gt=0, description="Canvas width (None = settings)")
    height: float | None = Field(
        default=None, gt=0, description="Canvas height (None = settings)"
    )
    margin: float = Field(default=40.0, ge=0, description="Padding from the canvas edge")
    component_gap: float = Field(
        default=80.0, ge=0, description="Gap between composed components"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    def signature(self) -> str:
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))

    @property
    def center(self) -> tuple[float, float]:
        return (self.width or 0.0) / 2, (self.height or 0.0) / 2


class HierarchicalOptions(LayoutOptions):
    level_spacing: float = Field(default=100.0, gt=0, description="Distance between levels")
    node_spacing: float = Field(default=60.0, gt=0, description="Minimum sibling spacing")
    parent_edge_types: tuple[str, ...] = Field(default=("parent", "child"))
    root_policy: Literal["out_degree", "none"] = Field(
        default="out_degree",
        description="How to pick roots when every node has a parent",
    )
    max_roots: int = Field(default=1, ge=1, description="Roots taken by the out_degree policy")
    orientation: Literal["vertical", "horizontal"] = "vertical"


class RadialOptions(LayoutOptions):
    base_radius: float = Field(default=60.0, ge=0, description="Radius of the innermost ring")
    ring_spacing: float = Field(default=90.0, gt=0, description="Distance between rings")
    start_angle: float = Field(default=0.0, description="Angle of the first node (radians)")
    relative_generations: bool = Field(
        default=False, description="Number rings from the lowest visible generation"
    )


class CircularOptions(LayoutOptions):
    radius_ratio: float = Field(
        default=0.4, gt=0, le=0.5, description="Circle radius as a share of the shorter canvas side"
    )
    start_angle: float = Field(default=0.0, description="Angle of the first node (radians)")


class TimelineOptions(LayoutOptions):
    time_field: Literal["birth_year", "death_year", "generation"] = "birth_year"
    time_scale: float = Field(default=2.0, gt=0, description="Pixels per time unit")
    min_distance: float = Field(default=40.0, gt=0, description="Minimum gap within a row")
    row_spacing: float = Field(default=50.0, gt=0, description="Distance between rows")
    untimed_gap: float = Field(default=80.0, ge=0, description="Gap above the untimed band")


class GridOptions(LayoutOptions):
    cell_width: float = Field(default=80.0, gt=0)
    cell_height: float = Field(default=80.0, gt=0)


class ClusterOptions(LayoutOptions):
    group_attribute: str = Field(default="era", description="Person field or attribute to group by")
    radius_ratio: float = Field(
        default=0.35, gt=0, description="Centroid circle radius as a share of min(width, height)"
    )
    iterations: int = Field(default=50, ge=0, description="Local relaxation ticks per group")
    charge: float = Field(default=-30.0, description="Repulsion between group members")
    center_strength: float = Field(default=0.1, ge=0, le=1)
    collide_factor: float = Field(default=1.2, gt=0)
    node_radius: float = Field(default=10.0, gt=0)


class ForceOptions(LayoutOptions):
    iterations: int = Field(default=300, ge=1)
    chunk_size: int = Field(default=50, ge=1, description="Iterations between cancellation checks")
    charge_strength: float = Field(default=-120.0)
    link_strength: float = Field(default=0.3, ge=0)
    link_distance: float = Field(default=80.0, gt=0)
    center_strength: float = Field(default=0.05, ge=0)
    collision_factor: float = Field(default=1.2, gt=0)
    node_radius: float = Field(default=10.0, gt=0)
    seed: int = 42
    pins: dict[str, tuple[float, float]] = Field(
        default_factory=dict, description="Caller pins: node id -> (x, y)"
    )


OPTIONS_BY_TYPE: dict[str, type[LayoutOptions]] = {
    "hierarchical": HierarchicalOptions,
    "radial": RadialOptions,
    "circular": CircularOptions,
    "timeline": TimelineOptions,
    "grid": GridOptions,
    "cluster": ClusterOptions,
    "force": ForceOptions,
}

LAYOUT_TYPES: tuple[str, ...] = tuple(OPTIONS_BY_TYPE)


def parse_options(
    layout_type: str,
    options: LayoutOptions | Mapping[str, Any] | None = None,
) -> LayoutOptions:
    """Validate options for a layout type.

    Raises:
        LayoutError: For an unknown layout type or invalid option values.
    """
    model = OPTIONS_BY_TYPE.get(layout_type)
    if model is None:
        raise LayoutError(
            f"Unknown layout type '{layout_type}' (expected one of {', '.join(LAYOUT_TYPES)})",
            layout_type,
        )
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, LayoutOptions):
        options = options.model_dump(exclude_unset=True)
    try:
        return model.model_validate(dict(options))
    except PydanticValidationError as e:
        raise LayoutError(f"Invalid {layout_type} options: {e}", layout_type) from e
