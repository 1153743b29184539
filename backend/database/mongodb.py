# backend/database/mongodb.py
import logging
from functools import lru_cache

from pymongo import MongoClient
from pymongo.database import Database

from backend.config import Settings, get_settings
from backend.services.errors import ConfigError

logger = logging.getLogger("mongodb")
logging.basicConfig(level=logging.INFO)


def create_client(settings: Settings) -> MongoClient:
    if not settings.mongo_uri:
        raise ConfigError("MONGO_URI is not set in environment/.env")
    # MongoClient connects lazily, so this does not hit the network yet
    return MongoClient(settings.mongo_uri, tz_aware=True)


@lru_cache(maxsize=1)
def get_client() -> MongoClient:
    """Single shared client, created on first use."""
    settings = get_settings()
    logger.info(f"Creating MongoDB client for database '{settings.mongo_db}'")
    return create_client(settings)


def get_db() -> Database:
    """Return the shared database object."""
    return get_client()[get_settings().mongo_db]
