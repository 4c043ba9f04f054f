"""Node filter predicates.

Filters are frozen Pydantic models so that two filter sets with the same
values compare equal, which keeps ``apply_filters`` idempotent. Any plain
callable taking a Person and returning a bool is accepted as well.
"""

from collections.abc import Callable, Iterable
from typing import Literal

from pydantic import BaseModel, Field

from lineagescope.models.graph import Person, Scalar


class AttributeFilter(BaseModel):
    """Keep people whose field equals one of ``values``."""

    kind: Literal["attribute"] = "attribute"
    field: str = Field(description="Person field or attribute name (e.g., 'era')")
    values: tuple[Scalar, ...] = Field(description="Accepted values")

    model_config = {"frozen": True}

    def matches(self, person: Person) -> bool:
        return person.value(self.field) in self.values


class RangeFilter(BaseModel):
    """Keep people whose numeric field lies within [minimum, maximum]."""

    kind: Literal["range"] = "range"
    field: str = Field(description="Numeric field (e.g., 'generation', 'birth_year')")
    minimum: float | None = None
    maximum: float | None = None
    keep_missing: bool = Field(default=False, description="Keep people without a value")

    model_config = {"frozen": True}

    def matches(self, person: Person) -> bool:
        value = person.value(self.field)
        if value is None or isinstance(value, (str, bool)):
            return self.keep_missing
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


class SearchFilter(BaseModel):
    """Keep people whose text fields contain ``query``."""

    kind: Literal["search"] = "search"
    query: str
    fields: tuple[str, ...] = ("name", "id")
    case_sensitive: bool = False

    model_config = {"frozen": True}

    def matches(self, person: Person) -> bool:
        needle = self.query if self.case_sensitive else self.query.lower()
        for field in self.fields:
            value = person.value(field)
            if value is None:
                continue
            text = str(value) if self.case_sensitive else str(value).lower()
            if needle in text:
                return True
        return False


NodeFilter = AttributeFilter | RangeFilter | SearchFilter | Callable[[Person], bool]


def matches_all(person: Person, filters: Iterable[NodeFilter]) -> bool:
    for node_filter in filters:
        check = node_filter.matches if isinstance(node_filter, BaseModel) else node_filter
        if not check(person):
            return False
    return True


def era_filter(*eras: str) -> AttributeFilter:
    return AttributeFilter(field="era", values=eras)


def generation_range(minimum: int | None = None, maximum: int | None = None) -> RangeFilter:
    return RangeFilter(field="generation", minimum=minimum, maximum=maximum)


def gender_filter(*genders: str) -> AttributeFilter:
    return AttributeFilter(field="gender", values=genders)
