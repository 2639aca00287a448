"""Sorting, pagination and shaping of filtered product results."""

import logging

from storefront.db.catalog_repository import catalog_repository
from storefront.models.filters import ProductsResponse, SortOption
from storefront.services.filter_compiler import CompiledFilter

logger = logging.getLogger(__name__)

SORT_FIELDS: dict[SortOption, list[tuple[str, int]]] = {
    SortOption.NEWEST: [("created_at", -1)],
    SortOption.OLDEST: [("created_at", 1)],
    SortOption.PRICE_ASC: [("price", 1)],
    SortOption.PRICE_DESC: [("price", -1)],
    SortOption.NAME_ASC: [("name", 1)],
    SortOption.NAME_DESC: [("name", -1)],
    SortOption.RATING_DESC: [("average_rating", -1)],
    SortOption.POPULARITY: [("sales", -1)],
}


def sort_spec(option: SortOption) -> list[tuple[str, int]]:
    """Sort fields for an option, with the document id as a stable tie-breaker for paging."""
    return [*SORT_FIELDS.get(option, SORT_FIELDS[SortOption.NEWEST]), ("_id", 1)]


class ResultAssembler:
    def __init__(self, repository=None):
        self.repository = repository if repository is not None else catalog_repository

    def execute(self, compiled: CompiledFilter | None, sort: SortOption, offset: int, limit: int) -> ProductsResponse:
        """
        Fetch one page of products for a compiled filter.

        Args:
            compiled: Compiled filter, or None when nothing can match
            sort: Sort order
            offset: Number of products to skip
            limit: Page size

        Returns:
            ProductsResponse with the page, the pre-pagination total and the
            max price of the category-scoped candidate set
        """
        if compiled is None:
            return ProductsResponse(offset=offset, limit=limit)

        products, total_count = self.repository.find_products(compiled.query, sort_spec(sort), offset, limit)

        # Price slider bound ignores brand, price and specification filters
        bounds = self.repository.price_bounds(compiled.query.category_scope())
        max_price = bounds[1] if bounds else 0

        return ProductsResponse(
            products=products,
            total_count=total_count,
            max_price=max_price,
            offset=offset,
            limit=limit,
            has_more=offset + len(products) < total_count,
        )
