"""Product filtering service with caching capabilities."""

import hashlib
import json
import logging
from typing import Any

from storefront.config import CACHE_TTL, PRODUCT_CACHE_TTL
from storefront.db.catalog_repository import catalog_repository
from storefront.db.redis_client import redis_client
from storefront.models.filters import FacetCounts, FilterData, FilterRequest, ProductsResponse
from storefront.services.category_tree_service import CATEGORIES_TAG, CategoryTreeService
from storefront.services.facet_service import FacetAggregator
from storefront.services.filter_compiler import FilterCompiler
from storefront.services.result_assembler import ResultAssembler
from storefront.services.specification_schema_service import SpecificationSchemaService

logger = logging.getLogger(__name__)

PRODUCTS_TAG = "products"
CACHE_TAGS = (CATEGORIES_TAG, PRODUCTS_TAG)


class ProductFilterService:
    def __init__(self, repository=None, cache=None):
        self.repository = repository if repository is not None else catalog_repository
        self.cache = cache if cache is not None else redis_client
        self.product_cache_ttl = PRODUCT_CACHE_TTL
        self.filter_cache_ttl = CACHE_TTL
        self.cache_hit_count = 0
        self.cache_miss_count = 0

        self.tree_service = CategoryTreeService(self.repository, self.cache)
        self.schema_service = SpecificationSchemaService(self.repository, self.cache)
        self.compiler = FilterCompiler(self.repository, self.tree_service, self.schema_service)
        self.assembler = ResultAssembler(self.repository)
        self.facets = FacetAggregator(self.repository, self.tree_service, self.schema_service, self.compiler)

    def _generate_cache_key(self, prefix: str, params: dict[str, Any]) -> str:
        """Generate a cache key for normalized request parameters."""
        params_str = json.dumps(params, sort_keys=True)
        # noinspection PyTypeChecker
        return f"{prefix}:{hashlib.md5(params_str.encode()).hexdigest()}"

    def _cached(self, cache_key: str) -> Any | None:
        cached = self.cache.get_json(cache_key)
        if cached is not None:
            self.cache_hit_count += 1
            logger.info(f"Cache hit for {cache_key}")
        else:
            self.cache_miss_count += 1
            logger.info(f"Cache miss for {cache_key}")
        return cached

    def get_cache_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total_requests = self.cache_hit_count + self.cache_miss_count
        if total_requests == 0:
            return 0.0
        return self.cache_hit_count / total_requests

    def get_products(self, request: FilterRequest) -> ProductsResponse:
        """
        Filter, sort and paginate the products of a category.

        A request without a category, or for a category that does not exist,
        yields an empty response rather than an error.
        """
        if not request.category:
            return ProductsResponse(offset=request.resolved_offset, limit=request.limit)

        cache_key = self._generate_cache_key("products", request.cache_params())
        cached = self._cached(cache_key)
        if cached is not None:
            return ProductsResponse.model_validate(cached)

        try:
            compiled = self.compiler.compile(request)
            result = self.assembler.execute(compiled, request.sort_option, request.resolved_offset, request.limit)
        except Exception as e:
            logger.error(f"Error filtering products for {request.category}: {e}")
            raise e

        self.cache.set_json(cache_key, result.model_dump(mode="json"), self.product_cache_ttl, tags=CACHE_TAGS)
        return result

    def get_filter_data(self, category_slug: str) -> FilterData:
        """Sidebar filter data for a category."""
        cache_key = f"filter_data:{category_slug}"
        cached = self._cached(cache_key)
        if cached is not None:
            return FilterData.model_validate(cached)

        try:
            result = self.facets.get_filter_data(category_slug)
        except Exception as e:
            logger.error(f"Error building filter data for {category_slug}: {e}")
            raise e

        self.cache.set_json(cache_key, result.model_dump(mode="json"), self.filter_cache_ttl, tags=CACHE_TAGS)
        return result

    def get_facet_counts(self, request: FilterRequest) -> FacetCounts:
        """Brand and subcategory counts for the current filter selection."""
        if not request.category:
            return FacetCounts()

        cache_key = self._generate_cache_key("facet_counts", request.cache_params())
        cached = self._cached(cache_key)
        if cached is not None:
            return FacetCounts.model_validate(cached)

        try:
            result = self.facets.get_facet_counts(request)
        except Exception as e:
            logger.error(f"Error counting facets for {request.category}: {e}")
            raise e

        self.cache.set_json(cache_key, result.model_dump(mode="json"), self.product_cache_ttl, tags=CACHE_TAGS)
        return result

    def clear_cache(self, tag: str) -> bool:
        """Invalidate every cached entry registered under a tag."""
        try:
            removed = self.cache.invalidate_tag(tag)
            logger.info(f"Cleared {removed} cache entries tagged {tag}")
            return True
        except Exception as e:
            logger.error(f"Error clearing cache tag {tag}: {e}")
            return False


# Singleton instance
product_filter_service = ProductFilterService()
