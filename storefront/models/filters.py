"""
Request and response models for the product filtering engine.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

from storefront.config import DEFAULT_PAGE_SIZE, MAX_OFFSET, MAX_PAGE_SIZE
from storefront.models.catalog import SpecificationType

MAX_PAGE = MAX_OFFSET // MAX_PAGE_SIZE + 1


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    RATING_DESC = "rating-desc"
    POPULARITY = "popularity"

    @classmethod
    def from_key(cls, key: str | None) -> "SortOption":
        """Map a raw sort key to an option. Unknown keys sort newest-first."""
        if not key:
            return cls.NEWEST
        key = key.strip().lower()
        aliases = {"createdat-desc": cls.NEWEST, "createdat-asc": cls.OLDEST, "sales-desc": cls.POPULARITY}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            return cls.NEWEST


def _clean_strings(values: list[str]) -> list[str]:
    cleaned = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class FilterRequest(BaseModel):
    category: str | None = None
    subcategories: list[str] = []
    brands: list[str] = []
    price_min: float | None = None
    price_max: float | None = None
    search: str | None = None
    sort: str | None = None
    offset: int = Field(0, ge=0, le=MAX_OFFSET)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    page: int | None = Field(None, ge=1, le=MAX_PAGE)  # Takes precedence over offset when set
    specifications: dict[str, list[str]] = {}

    @field_validator("category", "search")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("subcategories", "brands")
    @classmethod
    def _clean_lists(cls, values: list[str]) -> list[str]:
        return _clean_strings(values)

    @field_validator("specifications")
    @classmethod
    def _clean_specifications(cls, selections: dict[str, list[str]]) -> dict[str, list[str]]:
        cleaned = {}
        for spec_id, values in selections.items():
            spec_id = spec_id.strip()
            values = _clean_strings(values)
            if spec_id and values:
                cleaned[spec_id] = values
        return cleaned

    @property
    def resolved_offset(self) -> int:
        if self.page is not None:
            return (self.page - 1) * self.limit
        return self.offset

    @property
    def sort_option(self) -> SortOption:
        return SortOption.from_key(self.sort)

    def cache_params(self) -> dict[str, Any]:
        """Normalized view of the request; equal filters produce equal dicts."""
        return {
            "category": self.category,
            "subcategories": sorted(self.subcategories),
            "brands": sorted(b.lower() for b in self.brands),
            "price_min": self.price_min,
            "price_max": self.price_max,
            "search": self.search,
            "sort": self.sort_option.value,
            "offset": self.resolved_offset,
            "limit": self.limit,
            "specifications": {k: sorted(v) for k, v in sorted(self.specifications.items())},
        }


class ProductsResponse(BaseModel):
    products: list[dict[str, Any]] = []
    total_count: int = 0
    max_price: float = 0
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE
    has_more: bool = False


class EnumeratedFacet(BaseModel):
    kind: Literal["checkbox"] = "checkbox"
    id: str
    name: str
    type: SpecificationType
    unit: str | None = None
    options: list[str]


class NumericFacet(BaseModel):
    kind: Literal["range"] = "range"
    id: str
    name: str
    type: SpecificationType = SpecificationType.NUMBER
    unit: str | None = None
    min: float
    max: float


class BooleanFacet(BaseModel):
    kind: Literal["boolean"] = "boolean"
    id: str
    name: str
    type: SpecificationType = SpecificationType.BOOLEAN
    unit: str | None = None
    options: list[str]


SpecificationFacet = Annotated[EnumeratedFacet | NumericFacet | BooleanFacet, Field(discriminator="kind")]


class SubcategoryOption(BaseModel):
    id: str
    name: str
    slug: str


class FilterData(BaseModel):
    min_price: float = 0
    max_price: float = 100
    subcategories: list[SubcategoryOption] = []
    brands: list[str] = []
    specifications: list[SpecificationFacet] = []


class FacetCount(BaseModel):
    id: str
    name: str
    slug: str
    count: int


class FacetCounts(BaseModel):
    brands: list[FacetCount] = []
    subcategories: list[FacetCount] = []
