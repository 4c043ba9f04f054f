"""Relationship vocabulary: known types, reciprocals and link strengths."""

RELATIONSHIP_TYPES: tuple[str, ...] = (
    "parent",
    "child",
    "spouse",
    "sibling",
    "ancestor",
    "descendant",
    "extended-family",
    "mentor",
    "disciple",
    "ally",
    "rival",
)

RECIPROCALS: dict[str, str] = {
    "parent": "child",
    "child": "parent",
    "ancestor": "descendant",
    "descendant": "ancestor",
    "mentor": "disciple",
    "disciple": "mentor",
    "spouse": "spouse",
    "sibling": "sibling",
    "ally": "ally",
    "rival": "rival",
    "extended-family": "extended-family",
}

STRENGTHS: dict[str, int] = {
    "parent": 10,
    "child": 10,
    "spouse": 9,
    "sibling": 8,
    "ancestor": 7,
    "descendant": 7,
    "mentor": 6,
    "disciple": 6,
    "extended-family": 5,
    "ally": 4,
    "rival": 3,
}

# Edge types whose source is the child and target the parent.
CHILD_TO_PARENT_TYPES = frozenset({"child"})


def reciprocal_type(rel_type: str) -> str:
    """Return the inverse relationship type, or the type itself when unknown."""
    return RECIPROCALS.get(rel_type, rel_type)


def relationship_strength(rel_type: str) -> int:
    """Strength on a 1-10 scale; unknown types are weakest."""
    return STRENGTHS.get(rel_type, 1)


def default_weight(rel_type: str) -> float:
    return relationship_strength(rel_type) / 10
