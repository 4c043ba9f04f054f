"""Layout strategies, the layout cache and the layout engine."""

from lineagescope.layout.cache import LayoutCache, make_key
from lineagescope.layout.cluster import cluster_layout
from lineagescope.layout.engine import FALLBACK_LAYOUT, LayoutEngine
from lineagescope.layout.force import (
    ForceConfig,
    ForceSolver,
    LinkSpec,
    NodeState,
    SpringForceSolver,
    force_layout,
)
from lineagescope.layout.grid import grid_layout
from lineagescope.layout.hierarchical import hierarchical_layout
from lineagescope.layout.options import (
    LAYOUT_TYPES,
    CircularOptions,
    ClusterOptions,
    ForceOptions,
    GridOptions,
    HierarchicalOptions,
    LayoutOptions,
    RadialOptions,
    TimelineOptions,
    parse_options,
)
from lineagescope.layout.radial import circular_layout, radial_layout
from lineagescope.layout.timeline import timeline_layout

__all__ = [
    # Engine and cache
    "FALLBACK_LAYOUT",
    "LayoutCache",
    "LayoutEngine",
    "make_key",
    # Strategies
    "circular_layout",
    "cluster_layout",
    "force_layout",
    "grid_layout",
    "hierarchical_layout",
    "radial_layout",
    "timeline_layout",
    # Force solver boundary
    "ForceConfig",
    "ForceSolver",
    "LinkSpec",
    "NodeState",
    "SpringForceSolver",
    # Options
    "LAYOUT_TYPES",
    "CircularOptions",
    "ClusterOptions",
    "ForceOptions",
    "GridOptions",
    "HierarchicalOptions",
    "LayoutOptions",
    "RadialOptions",
    "TimelineOptions",
    "parse_options",
]
