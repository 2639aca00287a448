"""MongoDB connection and utilities."""

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from storefront.config import MONGO_CONFIG

CATEGORIES = "categories"
BRANDS = "brands"
PRODUCTS = "products"


class MongoDBClient:
    def __init__(self):
        self.client = MongoClient(MONGO_CONFIG["uri"])
        self.db: Database = self.client[MONGO_CONFIG["database"]]

    def get_collection(self, name: str) -> Collection:
        """Get a MongoDB collection."""
        return self.db[name]

    def create_indexes(self):
        """Create necessary indexes."""
        # Categories indexes
        self.db.get_collection(CATEGORIES).create_index("slug", unique=True)
        self.db.get_collection(CATEGORIES).create_index("parent_id")
        # Brands indexes
        self.db.get_collection(BRANDS).create_index("slug", unique=True)
        self.db.get_collection(BRANDS).create_index("is_active")
        # Products indexes
        products = self.db.get_collection(PRODUCTS)
        products.create_index("slug", unique=True)
        products.create_index("category_id")
        products.create_index("brand_id")
        products.create_index("price")
        products.create_index([("created_at", DESCENDING)])
        products.create_index([("category_id", ASCENDING), ("price", ASCENDING)])


# Singleton instance
mongo_client = MongoDBClient()
