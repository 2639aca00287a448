"""
Infrastructure Setup Script for the Storefront Filters Backend
This script checks the database connections and catalog data.
"""

import asyncio
import logging

from storefront.db.mongodb_client import BRANDS, CATEGORIES, PRODUCTS, mongo_client
from storefront.db.redis_client import redis_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

async def check_database_connections():
    """Check if all database connections are working."""
    logger.info("Checking database connections...")

    # Check MongoDB
    try:
        mongo_client.client.admin.command("ping")
        logger.info("✅ MongoDB connection: OK")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        return False

    # Check Redis
    try:
        redis_client.ping()
        logger.info("✅ Redis connection: OK")
    except Exception as e:
        logger.error(f"❌ Redis connection error: {e}")
        return False

    return True

async def check_data_availability():
    """Check if catalog data is available."""
    logger.info("Checking data availability...")

    try:
        category_count = mongo_client.get_collection(CATEGORIES).count_documents({})
        logger.info(f"📂 Categories in database: {category_count}")

        brand_count = mongo_client.get_collection(BRANDS).count_documents({})
        logger.info(f"🏷️ Brands in database: {brand_count}")

        product_count = mongo_client.get_collection(PRODUCTS).count_documents({})
        logger.info(f"📦 Products in database: {product_count}")

        if category_count == 0 or product_count == 0:
            logger.warning("⚠️ No catalog found. Run the catalog loader first.")
            return False

    except Exception as e:
        logger.error(f"Error checking data: {e}")
        return False

    return True

async def main():
    """Main setup function."""
    logger.info("🚀 Setting up Storefront Filters Backend...")

    # Check database connections
    if not await check_database_connections():
        logger.error("❌ Database connection check failed!")
        return False

    # Check data availability
    if not await check_data_availability():
        logger.warning("⚠️ Data availability check failed!")
        logger.info("💡 To load sample data, run:")
        logger.info("   python -m storefront.loaders.catalog_loader")
        return False

    logger.info("✅ Setup complete! Ready to start the server.")
    return True

if __name__ == "__main__":
    asyncio.run(main())
