"""Graph model, loading, traversal and analysis."""

from lineagescope.graph.analysis import (
    category_colors,
    compute_statistics,
    find_links,
    find_nodes,
    integrity_report,
    people_by_era,
    search_people,
)
from lineagescope.graph.generations import (
    calculate_generation,
    calculate_generations,
    with_generations,
)
from lineagescope.graph.loader import detect_shape, fallback_dataset, load_dataset
from lineagescope.graph.model import Graph
from lineagescope.graph.relations import (
    RELATIONSHIP_TYPES,
    reciprocal_type,
    relationship_strength,
)
from lineagescope.graph.traversal import (
    connected_components,
    create_subgraph,
    describe_relationship,
    extract_hierarchy,
    find_relationship_path,
    neighborhood,
    parents_of,
    shortest_path,
)

__all__ = [
    # Model and loading
    "Graph",
    "detect_shape",
    "fallback_dataset",
    "load_dataset",
    # Vocabulary
    "RELATIONSHIP_TYPES",
    "reciprocal_type",
    "relationship_strength",
    # Traversal
    "connected_components",
    "create_subgraph",
    "describe_relationship",
    "extract_hierarchy",
    "find_relationship_path",
    "neighborhood",
    "parents_of",
    "shortest_path",
    # Generations
    "calculate_generation",
    "calculate_generations",
    "with_generations",
    # Analysis
    "category_colors",
    "compute_statistics",
    "find_links",
    "find_nodes",
    "integrity_report",
    "people_by_era",
    "search_people",
]
