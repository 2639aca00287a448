"""FastAPI application for the storefront product filtering API."""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront.models.filters import FacetCounts, FilterData, ProductsResponse
from storefront.services.product_filter_service import CACHE_TAGS, product_filter_service
from storefront.utils.search_params import parse_filter_request

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Storefront Filters API",
    description="Category browsing with dynamic specification filters and faceted search",
    version="1.0.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Storefront Filters API"}


# Product Filtering Endpoints
@app.get("/api/products", response_model=ProductsResponse)
def get_products(request: Request):
    """Filtered, sorted and paginated products of a category."""
    filter_request = parse_filter_request(request.query_params.multi_items())
    try:
        return product_filter_service.get_products(filter_request)
    except Exception as e:
        logger.error(f"Error getting products: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@app.get("/api/products/facets", response_model=FacetCounts)
def get_facet_counts(request: Request):
    """Brand and subcategory counts for the current filter selection."""
    filter_request = parse_filter_request(request.query_params.multi_items())
    try:
        return product_filter_service.get_facet_counts(filter_request)
    except Exception as e:
        logger.error(f"Error getting facet counts: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@app.get("/api/categories/{category_slug}/filters", response_model=FilterData)
def get_filter_data(category_slug: str):
    """Sidebar filter data for a category."""
    try:
        return product_filter_service.get_filter_data(category_slug)
    except Exception as e:
        logger.error(f"Error getting filter data: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


# Cache Endpoints
@app.get("/api/cache/stats")
async def get_cache_stats():
    """Get filter cache statistics."""
    return {
        "cache_hit_rate": product_filter_service.get_cache_hit_rate(),
        "cache_hits": product_filter_service.cache_hit_count,
        "cache_misses": product_filter_service.cache_miss_count,
    }


@app.delete("/api/cache/{tag}")
async def clear_cache(tag: str):
    """Invalidate cached entries for a tag ('categories' or 'products')."""
    if tag not in CACHE_TAGS:
        raise HTTPException(status_code=404, detail=f"Unknown cache tag: {tag}")
    success = product_filter_service.clear_cache(tag)
    return {"success": success, "message": f"Cache cleared for {tag}"}
