"""Compilation of filter requests into product predicates."""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any

from storefront.db.catalog_repository import catalog_repository
from storefront.models.catalog import SpecificationDefinition, SpecificationType
from storefront.models.filters import FilterRequest
from storefront.services.category_tree_service import CategoryTreeService
from storefront.services.specification_schema_service import (
    SpecificationSchemaService,
    normalize_spec_id,
    parse_number,
)

logger = logging.getLogger(__name__)


def _stored_values(product: dict[str, Any], spec_id: str) -> list[Any]:
    specifications = product.get("specifications")
    if not isinstance(specifications, dict) or spec_id not in specifications:
        return []
    value = specifications[spec_id]
    # Array values match when any element matches, as in a MongoDB $in
    return list(value) if isinstance(value, list) else [value]


@dataclass(frozen=True)
class EnumeratedMatcher:
    spec_id: str
    values: tuple[str, ...]

    def query_values(self) -> list[Any]:
        return list(self.values)

    def matches(self, product: dict[str, Any]) -> bool:
        return any(isinstance(v, str) and v in self.values for v in _stored_values(product, self.spec_id))


@dataclass(frozen=True)
class NumericMatcher:
    spec_id: str
    numbers: tuple[float, ...]
    raw: tuple[str, ...]  # Selections as typed, for values stored as strings

    def query_values(self) -> list[Any]:
        return [*self.numbers, *self.raw]

    def matches(self, product: dict[str, Any]) -> bool:
        for value in _stored_values(product, self.spec_id):
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)) and float(value) in self.numbers:
                return True
            if isinstance(value, str) and value in self.raw:
                return True
        return False


@dataclass(frozen=True)
class BooleanMatcher:
    spec_id: str
    flags: tuple[bool, ...]

    def query_values(self) -> list[Any]:
        return [*self.flags, *(str(flag).lower() for flag in self.flags)]

    def matches(self, product: dict[str, Any]) -> bool:
        for value in _stored_values(product, self.spec_id):
            if isinstance(value, bool) and value in self.flags:
                return True
            if isinstance(value, str) and value in {str(flag).lower() for flag in self.flags}:
                return True
        return False


SpecificationMatcher = EnumeratedMatcher | NumericMatcher | BooleanMatcher


def build_matcher(definition: SpecificationDefinition, selections: list[str]) -> SpecificationMatcher | None:
    """
    Coerce raw selections according to the definition's type.

    Returns None when no selection survives coercion; such a specification adds
    no constraint.
    """
    spec_id = definition.id
    if definition.type == SpecificationType.NUMBER:
        parsed = [(parse_number(s), s) for s in selections]
        parsed = [(n, s) for n, s in parsed if n is not None]
        if not parsed:
            return None
        return NumericMatcher(spec_id, tuple(n for n, _ in parsed), tuple(s for _, s in parsed))
    if definition.type == SpecificationType.BOOLEAN:
        if not selections:
            return None
        flags = tuple(dict.fromkeys(s.lower() == "true" for s in selections))
        return BooleanMatcher(spec_id, flags)
    if not selections:
        return None
    return EnumeratedMatcher(spec_id, tuple(selections))


@dataclass(frozen=True)
class ProductQuery:
    """A conjunctive product predicate, renderable for MongoDB and evaluable in-process."""

    category_ids: tuple[str, ...]
    brand_ids: tuple[str, ...] | None = None
    price_min: float | None = None
    price_max: float | None = None
    search: str | None = None
    specifications: tuple[SpecificationMatcher, ...] = field(default_factory=tuple)

    @property
    def search_pattern(self) -> str | None:
        return re.escape(self.search) if self.search else None

    def to_mongo(self) -> dict[str, Any]:
        clauses: list[dict[str, Any]] = [{"category_id": {"$in": list(self.category_ids)}}]

        if self.brand_ids is not None:
            clauses.append({"brand_id": {"$in": list(self.brand_ids)}})

        price: dict[str, float] = {}
        if self.price_min is not None:
            price["$gte"] = self.price_min
        if self.price_max is not None:
            price["$lte"] = self.price_max
        if price:
            clauses.append({"price": price})

        if self.search:
            pattern = self.search_pattern
            clauses.append(
                {
                    "$or": [
                        {"name": {"$regex": pattern, "$options": "i"}},
                        {"description": {"$regex": pattern, "$options": "i"}},
                    ]
                }
            )

        for matcher in self.specifications:
            clauses.append({f"specifications.{matcher.spec_id}": {"$in": matcher.query_values()}})

        return {"$and": clauses}

    def matches(self, product: dict[str, Any]) -> bool:
        if product.get("category_id") not in self.category_ids:
            return False
        if self.brand_ids is not None and product.get("brand_id") not in self.brand_ids:
            return False

        price = product.get("price")
        if self.price_min is not None and (price is None or price < self.price_min):
            return False
        if self.price_max is not None and (price is None or price > self.price_max):
            return False

        if self.search:
            pattern = re.compile(self.search_pattern, re.IGNORECASE)
            texts = [product.get("name"), product.get("description")]
            if not any(isinstance(t, str) and pattern.search(t) for t in texts):
                return False

        return all(matcher.matches(product) for matcher in self.specifications)

    def category_scope(self) -> "ProductQuery":
        """Only the category constraint; the candidate set for max price and facets."""
        return ProductQuery(category_ids=self.category_ids)

    def without_brands(self) -> "ProductQuery":
        return replace(self, brand_ids=None)

    def with_categories(self, category_ids: list[str]) -> "ProductQuery":
        return replace(self, category_ids=tuple(category_ids))


@dataclass(frozen=True)
class CompiledFilter:
    query: ProductQuery
    descendant_ids: tuple[str, ...]  # The requested category's whole subtree


class FilterCompiler:
    def __init__(self, repository=None, tree_service=None, schema_service=None):
        self.repository = repository if repository is not None else catalog_repository
        self.tree_service = tree_service or CategoryTreeService(self.repository)
        self.schema_service = schema_service or SpecificationSchemaService(self.repository)

    def compile(self, request: FilterRequest) -> CompiledFilter | None:
        """
        Build the product predicate for a filter request.

        Returns None when the category scope is empty, meaning no product can
        match and the product collection need not be queried.
        """
        descendant_ids = self.tree_service.resolve_descendant_ids(request.category)
        if not descendant_ids:
            return None

        category_ids = self._resolve_category_scope(request, descendant_ids)
        if not category_ids:
            logger.info(f"No selected subcategory resolved for {request.category}: {request.subcategories}")
            return None

        query = ProductQuery(
            category_ids=tuple(category_ids),
            brand_ids=self._resolve_brand_ids(request.brands),
            price_min=request.price_min,
            price_max=request.price_max,
            search=request.search,
            specifications=tuple(self._build_specification_matchers(request)),
        )
        return CompiledFilter(query=query, descendant_ids=tuple(descendant_ids))

    def _resolve_category_scope(self, request: FilterRequest, descendant_ids: list[str]) -> list[str]:
        if not request.subcategories:
            return descendant_ids
        # Explicit subcategories narrow the scope to exactly those categories
        selected = self.repository.find_categories_by_slugs(request.subcategories)
        return list(dict.fromkeys(str(c["_id"]) for c in selected))

    def _resolve_brand_ids(self, brands: list[str]) -> tuple[str, ...] | None:
        if not brands:
            return None
        resolved = self.repository.find_brands_by_names_or_slugs(brands)
        if not resolved:
            # Unresolvable brands leave the brand constraint off
            logger.info(f"No brands matched {brands}, ignoring brand filter")
            return None
        return tuple(dict.fromkeys(str(b["_id"]) for b in resolved))

    def _build_specification_matchers(self, request: FilterRequest) -> list[SpecificationMatcher]:
        if not request.specifications:
            return []

        definitions = {
            normalize_spec_id(d.id): d for d in self.schema_service.resolve_applicable_specifications(request.category)
        }
        matchers = []
        for spec_id, selections in request.specifications.items():
            definition = definitions.get(normalize_spec_id(spec_id))
            if definition is None:
                logger.debug(f"Ignoring unknown specification {spec_id} for {request.category}")
                continue
            matcher = build_matcher(definition, selections)
            if matcher is not None:
                matchers.append(matcher)
        return matchers
