"""Resolution of category-scoped specification schemas and their facet metadata."""

import logging
import math
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from storefront.config import CATEGORY_CACHE_TTL
from storefront.db.catalog_repository import catalog_repository
from storefront.db.redis_client import redis_client
from storefront.models.catalog import SpecificationDefinition, SpecificationType
from storefront.models.filters import BooleanFacet, EnumeratedFacet, NumericFacet
from storefront.services.category_tree_service import CATEGORIES_TAG

logger = logging.getLogger(__name__)

DEFAULT_BOOLEAN_OPTIONS = ["Yes", "No"]


def normalize_spec_id(spec_id: str) -> str:
    return spec_id.strip().lower()


def parse_definitions(raw_definitions: Any) -> list[SpecificationDefinition]:
    """Validate stored definitions, skipping entries with an unusable shape."""
    if not isinstance(raw_definitions, list):
        return []

    definitions = []
    for raw in raw_definitions:
        if not isinstance(raw, dict):
            continue
        try:
            definitions.append(SpecificationDefinition.model_validate(raw))
        except ValidationError as e:
            logger.debug(f"Skipping malformed specification definition {raw!r}: {e}")
    return definitions


def merge_definitions(*sources: Iterable[SpecificationDefinition]) -> list[SpecificationDefinition]:
    """
    Merge definitions keyed by normalized id.

    The first definition seen for an id wins; options of later duplicates are
    unioned into it, keeping first-seen order.
    """
    merged: dict[str, SpecificationDefinition] = {}
    for source in sources:
        for definition in source:
            key = normalize_spec_id(definition.id)
            if not key:
                continue
            current = merged.get(key)
            if current is None:
                merged[key] = definition.model_copy(update={"options": list(dict.fromkeys(definition.options))})
                continue
            for option in definition.options:
                if option not in current.options:
                    current.options.append(option)
    return list(merged.values())


def parse_number(value: Any) -> float | None:
    """Parse a number the way a filter selection or declared option is written. Non-finite values are rejected."""
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def build_specification_facets(
    definitions: Iterable[SpecificationDefinition],
) -> list[EnumeratedFacet | NumericFacet | BooleanFacet]:
    """
    Derive sidebar facets from declared definitions.

    Options come from the schema, not from product data, so an option may match
    no products.
    """
    facets = []
    for definition in merge_definitions(definitions):
        if definition.type == SpecificationType.NUMBER:
            numbers = [n for n in (parse_number(o) for o in definition.options) if n is not None]
            if len(numbers) < 2:
                continue
            facets.append(
                NumericFacet(id=definition.id, name=definition.name, unit=definition.unit, min=min(numbers), max=max(numbers))
            )
        elif definition.type == SpecificationType.BOOLEAN:
            options = definition.options or list(DEFAULT_BOOLEAN_OPTIONS)
            facets.append(BooleanFacet(id=definition.id, name=definition.name, unit=definition.unit, options=options))
        elif definition.options:
            facets.append(
                EnumeratedFacet(
                    id=definition.id,
                    name=definition.name,
                    type=definition.type,
                    unit=definition.unit,
                    options=definition.options,
                )
            )
    return facets


class SpecificationSchemaService:
    def __init__(self, repository=None, cache=None):
        self.repository = repository if repository is not None else catalog_repository
        self.cache = cache if cache is not None else redis_client
        self.cache_ttl = CATEGORY_CACHE_TTL

    def find_schema_root(self, category: dict[str, Any]) -> dict[str, Any]:
        """Ascend parent links until a category without a (resolvable) parent."""
        root = category
        visited = {root["_id"]}
        parent_id = root.get("parent_id")
        while parent_id and parent_id not in visited:
            parent = self.repository.find_category_by_id(parent_id)
            if parent is None:
                break
            visited.add(parent_id)
            root = parent
            parent_id = parent.get("parent_id")
        return root

    def resolve_applicable_specifications(self, category_slug: str | None) -> list[SpecificationDefinition]:
        """Specification definitions inherited by a category from its schema root."""
        if not category_slug:
            return []

        cache_key = f"category_schema:{category_slug}"
        cached = self.cache.get_json(cache_key)
        if cached is not None:
            return [SpecificationDefinition.model_validate(d) for d in cached]

        category = self.repository.find_category(category_slug)
        if category is None:
            definitions = []
        else:
            root = self.find_schema_root(category)
            definitions = merge_definitions(parse_definitions(root.get("specifications")))

        self.cache.set_json(
            cache_key,
            [d.model_dump(mode="json") for d in definitions],
            self.cache_ttl,
            tags=[CATEGORIES_TAG],
        )
        return definitions

    def get_specification_facets(self, category_slug: str | None) -> list[EnumeratedFacet | NumericFacet | BooleanFacet]:
        return build_specification_facets(self.resolve_applicable_specifications(category_slug))
