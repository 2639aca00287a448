"""Facet aggregation for the product filter sidebar."""

import logging

from storefront.db.catalog_repository import catalog_repository
from storefront.models.filters import FacetCount, FacetCounts, FilterData, FilterRequest, SubcategoryOption
from storefront.services.category_tree_service import CategoryTreeService
from storefront.services.filter_compiler import FilterCompiler, ProductQuery
from storefront.services.specification_schema_service import SpecificationSchemaService

logger = logging.getLogger(__name__)


class FacetAggregator:
    def __init__(self, repository=None, tree_service=None, schema_service=None, compiler=None):
        self.repository = repository if repository is not None else catalog_repository
        self.tree_service = tree_service or CategoryTreeService(self.repository)
        self.schema_service = schema_service or SpecificationSchemaService(self.repository)
        self.compiler = compiler or FilterCompiler(self.repository, self.tree_service, self.schema_service)

    def get_filter_data(self, category_slug: str | None) -> FilterData:
        """
        Sidebar data for a category: price bounds, direct subcategories, brands
        and declared specification facets.

        Every facet is computed against the whole category subtree, so selecting
        one filter never hides the options of another.
        """
        descendant_ids = self.tree_service.resolve_descendant_ids(category_slug)
        if not descendant_ids:
            return FilterData()

        scope = ProductQuery(category_ids=tuple(descendant_ids))

        bounds = self.repository.price_bounds(scope)
        min_price, max_price = bounds if bounds else (0, 100)

        brand_counts = self.repository.count_by(scope, "brand_id")
        # Inactive or dangling brand references simply drop out here
        brands = self.repository.find_brands_by_ids(list(brand_counts), active_only=True)

        subcategories = [
            SubcategoryOption(id=str(c["_id"]), name=c["name"], slug=c["slug"])
            for c in self.tree_service.get_children(descendant_ids[0])
        ]

        return FilterData(
            min_price=min_price,
            max_price=max_price,
            subcategories=subcategories,
            brands=sorted({b["name"] for b in brands}),
            specifications=self.schema_service.get_specification_facets(category_slug),
        )

    def get_facet_counts(self, request: FilterRequest) -> FacetCounts:
        """
        Product counts per brand and per direct subcategory.

        Each facet is counted with every active filter except its own: brand
        counts ignore the brand selection, subcategory counts ignore the
        subcategory selection.
        """
        compiled = self.compiler.compile(request)
        if compiled is None:
            return FacetCounts()

        brand_counts = self.repository.count_by(compiled.query.without_brands(), "brand_id")
        brands = [
            FacetCount(id=str(b["_id"]), name=b["name"], slug=b["slug"], count=brand_counts.get(b["_id"], 0))
            for b in self.repository.find_brands_by_ids(list(brand_counts), active_only=True)
        ]
        brands.sort(key=lambda f: (-f.count, f.name))

        subtree_query = compiled.query.with_categories(list(compiled.descendant_ids))
        category_counts = self.repository.count_by(subtree_query, "category_id")
        subcategories = []
        for child in self.tree_service.get_children(compiled.descendant_ids[0]):
            child_ids = self.tree_service.resolve_descendant_ids(str(child["_id"]))
            count = sum(category_counts.get(category_id, 0) for category_id in child_ids)
            subcategories.append(FacetCount(id=str(child["_id"]), name=child["name"], slug=child["slug"], count=count))

        return FacetCounts(brands=brands, subcategories=subcategories)
