"""Selection state, filters and the renderer boundary."""

from lineagescope.view.adapter import InteractionAdapter, RenderFrame, Renderer
from lineagescope.view.filters import (
    AttributeFilter,
    NodeFilter,
    RangeFilter,
    SearchFilter,
    era_filter,
    gender_filter,
    generation_range,
    matches_all,
)
from lineagescope.view.selection import SelectionManager

__all__ = [
    # Selection
    "SelectionManager",
    # Filters
    "AttributeFilter",
    "NodeFilter",
    "RangeFilter",
    "SearchFilter",
    "era_filter",
    "gender_filter",
    "generation_range",
    "matches_all",
    # Renderer boundary
    "InteractionAdapter",
    "RenderFrame",
    "Renderer",
]
