"""Engine settings.

Settings are plain pydantic models owned by each session; nothing here is a
module-level singleton. ``load_settings`` reads ``LINEAGESCOPE_*`` environment
variables at call time (``.env`` is loaded when the package is imported).
"""

import os
from typing import Any

from pydantic import BaseModel, Field

ORIGIN_YEAR = -4000
YEARS_PER_GENERATION = 25


class EraSpan(BaseModel):
    """A named historical period, inclusive on both ends."""

    id: str = Field(description="Era identifier (e.g., 'patriarchal')")
    start_year: int = Field(description="First year of the era (negative = BCE)")
    end_year: int = Field(description="Last year of the era")

    model_config = {"frozen": True}

    def contains(self, year: int) -> bool:
        return self.start_year <= year <= self.end_year


DEFAULT_ERAS: tuple[EraSpan, ...] = (
    EraSpan(id="antediluvian", start_year=-4000, end_year=-2350),
    EraSpan(id="postdiluvian", start_year=-2349, end_year=-2000),
    EraSpan(id="patriarchal", start_year=-1999, end_year=-1500),
    EraSpan(id="exodus-conquest", start_year=-1499, end_year=-1100),
    EraSpan(id="judges-kings", start_year=-1099, end_year=-586),
    EraSpan(id="exile-return", start_year=-585, end_year=-400),
    EraSpan(id="intertestamental", start_year=-399, end_year=-5),
    EraSpan(id="new-testament", start_year=-4, end_year=100),
)

DEFAULT_KEY_FIGURES: tuple[str, ...] = (
    "adam", "noah", "abraham", "isaac", "jacob", "joseph", "moses", "joshua",
    "samuel", "david", "solomon", "elijah", "isaiah", "jeremiah", "ezekiel",
    "daniel", "john_the_baptist", "jesus", "peter", "paul", "john",
)


class GenerationSettings(BaseModel):
    """How generations are derived from birth years."""

    origin_year: int = Field(default=ORIGIN_YEAR, description="Year of generation 0")
    year_span: int = Field(
        default=YEARS_PER_GENERATION, gt=0, description="Years per generation"
    )

    model_config = {"frozen": True}

    def from_birth_year(self, birth_year: int) -> int:
        return (birth_year - self.origin_year) // self.year_span


class EngineSettings(BaseModel):
    """Per-session settings for layout, selection and data enrichment."""

    canvas_width: float = Field(default=1200.0, gt=0, description="Canvas width")
    canvas_height: float = Field(default=800.0, gt=0, description="Canvas height")
    node_radius: float = Field(default=10.0, gt=0, description="Base node radius")
    cache_size: int = Field(default=16, ge=1, description="Max cached layout results")
    highlight_on_select: bool = Field(
        default=True, description="Recompute highlights when the selection changes"
    )
    highlight_depth: int = Field(default=1, ge=0, description="Hops highlighted per selection")
    history_limit: int = Field(default=20, ge=1, description="Undo stack depth")
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    eras: tuple[EraSpan, ...] = Field(default=DEFAULT_ERAS)
    default_era: str = Field(default="unknown", description="Era when no year matches")
    key_figures: tuple[str, ...] = Field(default=DEFAULT_KEY_FIGURES)

    def era_for_year(self, year: int | None) -> str:
        if year is None:
            return self.default_era
        for era in self.eras:
            if era.contains(year):
                return era.id
        return self.default_era


_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "LINEAGESCOPE_CANVAS_WIDTH": ("canvas_width", float),
    "LINEAGESCOPE_CANVAS_HEIGHT": ("canvas_height", float),
    "LINEAGESCOPE_NODE_RADIUS": ("node_radius", float),
    "LINEAGESCOPE_CACHE_SIZE": ("cache_size", int),
    "LINEAGESCOPE_HIGHLIGHT_DEPTH": ("highlight_depth", int),
    "LINEAGESCOPE_HISTORY_LIMIT": ("history_limit", int),
}


def load_settings(**overrides: Any) -> EngineSettings:
    """Build EngineSettings from the environment plus explicit overrides.

    Explicit overrides win over environment variables.

    Args:
        **overrides: EngineSettings field values.

    Returns:
        Validated EngineSettings.
    """
    values: dict[str, Any] = {}
    for env_name, (field, cast) in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw:
            values[field] = cast(raw)

    origin = os.getenv("LINEAGESCOPE_ORIGIN_YEAR")
    span = os.getenv("LINEAGESCOPE_YEAR_SPAN")
    if origin or span:
        values["generation"] = GenerationSettings(
            origin_year=int(origin) if origin else ORIGIN_YEAR,
            year_span=int(span) if span else YEARS_PER_GENERATION,
        )

    values.update(overrides)
    return EngineSettings(**values)
