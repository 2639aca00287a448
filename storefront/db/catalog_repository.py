"""Read-only access to the catalog collections in MongoDB."""

import logging
import re
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from storefront.db.mongodb_client import BRANDS, CATEGORIES, PRODUCTS, mongo_client

if TYPE_CHECKING:
    from storefront.services.filter_compiler import ProductQuery

logger = logging.getLogger(__name__)

CATEGORY_PROJECTION = {"_id": 1, "name": 1, "slug": 1, "parent_id": 1, "specifications": 1}
BRAND_PROJECTION = {"_id": 1, "name": 1, "slug": 1, "is_active": 1}


def _exact_insensitive(value: str) -> re.Pattern:
    return re.compile(f"^{re.escape(value)}$", re.IGNORECASE)


class CatalogRepository:
    def __init__(self, client=None):
        self.client = client or mongo_client

    @property
    def categories(self):
        return self.client.get_collection(CATEGORIES)

    @property
    def brands(self):
        return self.client.get_collection(BRANDS)

    @property
    def products(self):
        return self.client.get_collection(PRODUCTS)

    # Categories

    def find_category(self, identifier: str) -> dict[str, Any] | None:
        """Find a category by slug, falling back to its id."""
        return self.categories.find_one(
            {"$or": [{"slug": identifier}, {"_id": identifier}]},
            CATEGORY_PROJECTION,
        )

    def find_category_by_id(self, category_id: str) -> dict[str, Any] | None:
        return self.categories.find_one({"_id": category_id}, CATEGORY_PROJECTION)

    def find_categories_by_slugs(self, slugs: list[str]) -> list[dict[str, Any]]:
        if not slugs:
            return []
        return list(self.categories.find({"slug": {"$in": slugs}}, CATEGORY_PROJECTION))

    def find_child_categories(self, parent_ids: list[str]) -> list[dict[str, Any]]:
        """Direct children of any of the given categories, ordered by name."""
        if not parent_ids:
            return []
        cursor = self.categories.find(
            {"parent_id": {"$in": parent_ids}},
            {"_id": 1, "name": 1, "slug": 1, "parent_id": 1},
        )
        return list(cursor.sort("name", 1))

    # Brands

    def find_brands_by_names_or_slugs(self, values: list[str]) -> list[dict[str, Any]]:
        """Case-insensitive exact match on brand name or slug."""
        if not values:
            return []
        patterns = [_exact_insensitive(v) for v in values]
        return list(
            self.brands.find(
                {"$or": [{"name": {"$in": patterns}}, {"slug": {"$in": patterns}}]},
                BRAND_PROJECTION,
            )
        )

    def find_brands_by_ids(self, brand_ids: list[str], active_only: bool = True) -> list[dict[str, Any]]:
        if not brand_ids:
            return []
        query: dict[str, Any] = {"_id": {"$in": brand_ids}}
        if active_only:
            query["is_active"] = True
        return list(self.brands.find(query, BRAND_PROJECTION).sort("name", 1))

    # Products

    def find_products(
        self,
        query: "ProductQuery",
        sort: list[tuple[str, int]],
        skip: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """Run the filtered product query. Returns the requested page and the total count."""
        pipeline = [
            {"$match": query.to_mongo()},
            {
                "$facet": {
                    "paginatedResults": [
                        {"$sort": dict(sort)},
                        {"$skip": skip},
                        {"$limit": limit},
                        {"$lookup": {"from": BRANDS, "localField": "brand_id", "foreignField": "_id", "as": "brand_data"}},
                        {
                            "$lookup": {
                                "from": CATEGORIES,
                                "localField": "category_id",
                                "foreignField": "_id",
                                "as": "category_data",
                            }
                        },
                        {
                            "$project": {
                                "_id": 1,
                                "name": 1,
                                "slug": 1,
                                "price": 1,
                                "original_price": 1,
                                "stock": 1,
                                "average_rating": 1,
                                "specifications": 1,
                                "created_at": 1,
                                "brand": {
                                    "name": {"$arrayElemAt": ["$brand_data.name", 0]},
                                    "slug": {"$arrayElemAt": ["$brand_data.slug", 0]},
                                },
                                "category": {
                                    "name": {"$arrayElemAt": ["$category_data.name", 0]},
                                    "slug": {"$arrayElemAt": ["$category_data.slug", 0]},
                                },
                            }
                        },
                    ],
                    "totalCount": [{"$count": "count"}],
                }
            },
        ]

        try:
            results = list(self.products.aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Error aggregating products: {e}")
            raise

        data = results[0] if results else {}
        products = [self._to_product_card(doc) for doc in data.get("paginatedResults", [])]
        total = data.get("totalCount", [])
        return products, total[0]["count"] if total else 0

    def price_bounds(self, query: "ProductQuery") -> tuple[float, float] | None:
        """Min and max price over the matching products, or None when nothing matches."""
        pipeline = [
            {"$match": query.to_mongo()},
            {"$group": {"_id": None, "min_price": {"$min": "$price"}, "max_price": {"$max": "$price"}}},
        ]
        try:
            results = list(self.products.aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Error computing price bounds: {e}")
            raise

        if not results or results[0].get("max_price") is None:
            return None
        return float(results[0]["min_price"]), float(results[0]["max_price"])

    def count_by(self, query: "ProductQuery", field: str) -> dict[str, int]:
        """Number of matching products per distinct value of a field. Missing values are skipped."""
        pipeline = [
            {"$match": query.to_mongo()},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        ]
        try:
            results = self.products.aggregate(pipeline)
            return {row["_id"]: row["count"] for row in results if row["_id"] is not None}
        except PyMongoError as e:
            logger.error(f"Error counting products by {field}: {e}")
            raise

    @staticmethod
    def _to_product_card(doc: dict[str, Any]) -> dict[str, Any]:
        product = dict(doc)
        product["id"] = str(product.pop("_id"))
        created_at = product.get("created_at")
        product["created_at"] = created_at.isoformat() if hasattr(created_at, "isoformat") else created_at
        if not product.get("brand") or not product["brand"].get("name"):
            product["brand"] = None
        return product


# Singleton instance
catalog_repository = CatalogRepository()
