"""Exception types raised by lineagescope.

Only unrecoverable conditions are raised. Dropped edges, empty traversal
results and layout fallbacks are reported through return values and the
``lineagescope`` logger instead.
"""


class LineageError(Exception):
    """Base class for all lineagescope errors."""


class ValidationError(LineageError):
    """Raised when input data is malformed beyond local recovery."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.problems:
            return base
        shown = "; ".join(self.problems[:5])
        more = f" (+{len(self.problems) - 5} more)" if len(self.problems) > 5 else ""
        return f"{base}: {shown}{more}"


class NotFoundError(LineageError):
    """Raised when a node or edge id is required but absent."""

    def __init__(self, message: str, node_id: str):
        super().__init__(message)
        self.node_id = node_id


class LayoutError(LineageError):
    """Raised when a layout strategy and its fallback both fail."""

    def __init__(self, message: str, layout_type: str):
        super().__init__(message)
        self.layout_type = layout_type


class TraversalLimitError(LineageError):
    """Signals that a search exceeded its depth bound.

    Traversal functions catch this internally and report "no path".
    """

    def __init__(self, message: str, max_depth: int):
        super().__init__(message)
        self.max_depth = max_depth
