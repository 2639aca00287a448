"""Shared fixtures: an in-memory catalog repository and cache."""

import copy
import json
from datetime import datetime

import pytest

from storefront.services.filter_compiler import ProductQuery


class InMemoryCache:
    """Dict-backed stand-in for RedisClient with the same JSON round trip."""

    def __init__(self):
        self.store = {}
        self.tags = {}

    def get_json(self, key):
        data = self.store.get(key)
        return json.loads(data) if data is not None else None

    def set_json(self, key, value, ttl=3600, tags=()):
        self.store[key] = json.dumps(value, default=str)
        for tag in tags:
            self.tags.setdefault(tag, set()).add(key)
        return True

    def invalidate_tag(self, tag):
        keys = self.tags.pop(tag, set())
        for key in keys:
            self.store.pop(key, None)
        return len(keys)


def _sort_key(value):
    # MongoDB orders missing and null values before everything else
    return (0, 0) if value is None else (1, value)


class InMemoryCatalogRepository:
    """Implements the CatalogRepository interface over plain lists of documents."""

    def __init__(self, categories=(), brands=(), products=()):
        self.categories = [copy.deepcopy(c) for c in categories]
        self.brands = [copy.deepcopy(b) for b in brands]
        self.products = [copy.deepcopy(p) for p in products]
        self.product_queries = 0

    def find_category(self, identifier):
        return next((c for c in self.categories if identifier in (c["slug"], c["_id"])), None)

    def find_category_by_id(self, category_id):
        return next((c for c in self.categories if c["_id"] == category_id), None)

    def find_categories_by_slugs(self, slugs):
        return [c for c in self.categories if c["slug"] in slugs]

    def find_child_categories(self, parent_ids):
        children = [c for c in self.categories if c.get("parent_id") in parent_ids]
        return sorted(children, key=lambda c: c["name"])

    def find_brands_by_names_or_slugs(self, values):
        wanted = {v.lower() for v in values}
        return [b for b in self.brands if b["name"].lower() in wanted or b["slug"].lower() in wanted]

    def find_brands_by_ids(self, brand_ids, active_only=True):
        brands = [b for b in self.brands if b["_id"] in brand_ids and (b.get("is_active") or not active_only)]
        return sorted(brands, key=lambda b: b["name"])

    def _matching(self, query: ProductQuery):
        self.product_queries += 1
        return [p for p in self.products if query.matches(p)]

    def find_products(self, query, sort, skip, limit):
        matched = self._matching(query)
        for field, direction in reversed(sort):
            matched.sort(key=lambda p: _sort_key(p.get(field)), reverse=direction < 0)
        page = []
        for doc in matched[skip : skip + limit]:
            product = {k: v for k, v in doc.items() if k != "_id"}
            product["id"] = doc["_id"]
            brand = next((b for b in self.brands if b["_id"] == doc.get("brand_id")), None)
            product["brand"] = {"name": brand["name"], "slug": brand["slug"]} if brand else None
            page.append(product)
        return page, len(matched)

    def price_bounds(self, query):
        prices = [p["price"] for p in self._matching(query)]
        return (min(prices), max(prices)) if prices else None

    def count_by(self, query, field):
        counts = {}
        for product in self._matching(query):
            value = product.get(field)
            if value is not None:
                counts[value] = counts.get(value, 0) + 1
        return counts


@pytest.fixture
def laptop_categories():
    return [
        {
            "_id": "C1",
            "name": "Laptops",
            "slug": "laptops",
            "parent_id": None,
            "specifications": [
                {"id": "ram", "name": "RAM", "type": "NUMBER", "options": ["8", "16", "32"], "unit": "GB"},
                {"id": "processor", "name": "Processor", "type": "SELECT", "options": ["Intel Core i5", "AMD Ryzen 7"]},
                {"id": "touchscreen", "name": "Touchscreen", "type": "BOOLEAN", "options": []},
            ],
        },
        {"_id": "C2", "name": "Gaming Laptops", "slug": "gaming-laptops", "parent_id": "C1", "specifications": []},
    ]


@pytest.fixture
def laptop_brands():
    return [
        {"_id": "B1", "name": "Acer", "slug": "acer", "is_active": True},
        {"_id": "B2", "name": "Asus", "slug": "asus", "is_active": True},
    ]


@pytest.fixture
def laptop_products():
    return [
        {
            "_id": "P1",
            "name": "Acer Aspire 5",
            "description": "Everyday laptop",
            "price": 50000,
            "category_id": "C1",
            "brand_id": "B1",
            "specifications": {"ram": 8, "processor": "Intel Core i5", "touchscreen": False},
            "created_at": datetime(2025, 1, 10),
        },
        {
            "_id": "P2",
            "name": "Asus ROG Strix",
            "description": "Gaming laptop with RTX graphics",
            "price": 80000,
            "category_id": "C2",
            "brand_id": "B2",
            "specifications": {"ram": "32", "processor": "Intel Core i5", "touchscreen": False},
            "created_at": datetime(2025, 3, 2),
        },
        {
            "_id": "P3",
            "name": "Acer Nitro V",
            "description": "Entry gaming laptop",
            "price": 60000,
            "category_id": "C2",
            "brand_id": "B1",
            "specifications": {"ram": 16, "processor": "AMD Ryzen 7", "touchscreen": True},
            "created_at": datetime(2025, 2, 14),
        },
    ]


@pytest.fixture
def repository(laptop_categories, laptop_brands, laptop_products):
    return InMemoryCatalogRepository(laptop_categories, laptop_brands, laptop_products)


@pytest.fixture
def cache():
    return InMemoryCache()
