"""Load catalog data into MongoDB."""

import json

from storefront.config import DATA_DIR
from storefront.db.mongodb_client import BRANDS, CATEGORIES, PRODUCTS, mongo_client
from storefront.models.catalog import Brand, Category, Product
from storefront.services.product_filter_service import CACHE_TAGS, product_filter_service


class CatalogLoader:
    def __init__(self, data_dir=DATA_DIR):
        self.client = mongo_client
        self.data_dir = data_dir

    def _read(self, filename: str) -> list[dict]:
        path = self.data_dir / filename
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _replace_collection(self, name: str, docs: list[dict]) -> int:
        col = self.client.get_collection(name)
        col.delete_many({})
        if docs:
            col.insert_many(docs)
        return len(docs)

    def load_categories(self):
        """Load categories, with their specification schemas, into MongoDB."""
        docs = [Category.model_validate(raw).model_dump(by_alias=True) for raw in self._read("categories.json")]
        count = self._replace_collection(CATEGORIES, docs)
        print(f"Loaded {count} categories into MongoDB")

    def load_brands(self):
        """Load brands into MongoDB."""
        docs = [Brand.model_validate(raw).model_dump(by_alias=True) for raw in self._read("brands.json")]
        count = self._replace_collection(BRANDS, docs)
        print(f"Loaded {count} brands into MongoDB")

    def load_products(self):
        """Load products into MongoDB."""
        docs = [Product.model_validate(raw).model_dump(by_alias=True) for raw in self._read("products.json")]
        count = self._replace_collection(PRODUCTS, docs)
        print(f"Loaded {count} products into MongoDB")

    def load_all(self):
        """Execute all catalog loading tasks."""
        self.client.create_indexes()
        self.load_categories()
        self.load_brands()
        self.load_products()
        for tag in CACHE_TAGS:
            product_filter_service.clear_cache(tag)
        print("Catalog data loading complete!")


if __name__ == "__main__":
    loader = CatalogLoader()
    loader.load_all()
