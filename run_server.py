#!/usr/bin/env python3
"""
Storefront Filters Backend Startup Script
Serves the filtering API with settings from storefront.config.
"""

import logging

import uvicorn

from storefront.config import SERVER_CONFIG

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

ENDPOINTS = [
    ("Health Check", "GET /health"),
    ("Products", "GET /api/products?category=<slug>&brands=...&priceMin=...&<spec>=..."),
    ("Facet Counts", "GET /api/products/facets?category=<slug>"),
    ("Filter Data", "GET /api/categories/{category_slug}/filters"),
    ("Cache Stats", "GET /api/cache/stats"),
    ("Cache Invalidation", "DELETE /api/cache/{tag}"),
]


def main(config: dict | None = None):
    config = {**SERVER_CONFIG, **(config or {})}
    base_url = f"http://{config['host']}:{config['port']}"

    logger.info("Starting Storefront Filters Backend...")
    for name, route in ENDPOINTS:
        logger.info(f"  - {name}: {route}")
    logger.info(f"  - API Docs: {base_url}/docs")

    uvicorn.run("storefront.main:app", **config)


if __name__ == "__main__":
    main()
