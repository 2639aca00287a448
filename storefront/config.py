"""Application settings read from the environment."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))

MONGO_CONFIG = {
    "uri": os.getenv("MONGO_URI", "mongodb://localhost:27017"),
    "database": os.getenv("MONGO_DATABASE", "storefront"),
}

REDIS_CONFIG = {
    "host": os.getenv("REDIS_HOST", "localhost"),
    "port": int(os.getenv("REDIS_PORT", "6379")),
    "db": int(os.getenv("REDIS_DB", "0")),
    "password": os.getenv("REDIS_PASSWORD") or None,
}

# Seconds
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))
CATEGORY_CACHE_TTL = int(os.getenv("CATEGORY_CACHE_TTL", str(60 * 60 * 24)))
PRODUCT_CACHE_TTL = int(os.getenv("PRODUCT_CACHE_TTL", "300"))

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "12"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))
# Deepest $skip a listing may request
MAX_OFFSET = int(os.getenv("MAX_OFFSET", "100000"))

SERVER_CONFIG = {
    "host": os.getenv("SERVER_HOST", "0.0.0.0"),
    "port": int(os.getenv("SERVER_PORT", "8000")),
    "reload": os.getenv("SERVER_RELOAD", "false").lower() in ("1", "true", "yes"),
    "log_level": os.getenv("LOG_LEVEL", "info").lower(),
}
