"""lineagescope - layout and traversal engine for genealogical relationship graphs."""

# Load .env so LINEAGESCOPE_* settings are visible to any entry point
# (CLI, pytest, scripts) that imports lineagescope.
from dotenv import load_dotenv

load_dotenv()

# Keep in sync with pyproject.toml [project] version.
__version__ = "0.1.0"


def open_session(data: dict | None = None, **overrides):
    """Create a LineageSession, optionally loading a dataset into it.

    Args:
        data: Raw dataset in either supported shape, or None for an empty session.
        **overrides: EngineSettings fields to override.

    Returns:
        A ready LineageSession.
    """
    from lineagescope.session import LineageSession

    session = LineageSession.from_env(**overrides)
    if data is not None:
        session.load(data)
    return session
