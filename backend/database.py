import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from core.config import settings

logger = logging.getLogger(__name__)

# ===== CLIENT INSTANCES =====
async_client: Optional[AsyncIOMotorClient] = None
async_database: Optional[AsyncIOMotorDatabase] = None

# ===== INITIALIZATION FLAGS =====
_async_initialized = False


# ============================================
# ASYNC CLIENT INITIALIZATION
# ============================================

def initialize_async_client() -> AsyncIOMotorClient:
    """Initialize async MongoDB client (call once at startup)"""
    global async_client, async_database, _async_initialized

    if async_client is not None and _async_initialized:
        return async_client

    try:
        async_client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            appName="list_subscriptions",
            **settings.get_mongodb_config()
        )
        async_database = async_client[settings.MONGODB_DATABASE]
        _async_initialized = True
        logger.info("Async MongoDB client initialized")

    except PyMongoError as e:
        logger.error(f"Failed to initialize async MongoDB client: {e}")
        raise

    return async_client


def get_async_database() -> AsyncIOMotorDatabase:
    """Get async database instance"""
    if async_database is None:
        initialize_async_client()
    return async_database


def close_async_client():
    global async_client, async_database, _async_initialized
    if async_client is not None:
        async_client.close()
        logger.info("Async MongoDB client closed")
    async_client = None
    async_database = None
    _async_initialized = False


# ============================================
# COLLECTION GETTERS
# ============================================

def get_lists_collection():
    """Mailing lists collection"""
    return get_async_database().lists

def get_fields_collection():
    """Custom field definitions, one document per field"""
    return get_async_database().fields

def get_subscriptions_collection():
    """Subscriptions collection, custom values stored under their field columns"""
    return get_async_database().subscriptions

def get_settings_collection():
    """Application settings collection, one {key, value} document per setting"""
    return get_async_database().settings

def get_custom_forms_collection():
    """Custom subscription form templates collection"""
    return get_async_database().custom_forms


# ============================================
# INDEXES
# ============================================

async def ensure_indexes():
    """Create the indexes the stores rely on"""
    try:
        fields = get_fields_collection()
        await fields.create_index([("list_id", ASCENDING), ("key", ASCENDING)], unique=True)
        await fields.create_index([("list_id", ASCENDING), ("id", ASCENDING)], unique=True)

        subscriptions = get_subscriptions_collection()
        await subscriptions.create_index([("list_id", ASCENDING), ("email", ASCENDING)], unique=True)
        await subscriptions.create_index([("list_id", ASCENDING), ("cid", ASCENDING)], unique=True)

        await get_settings_collection().create_index([("key", ASCENDING)], unique=True)
        await get_lists_collection().create_index([("cid", ASCENDING)], unique=True)

        logger.info("Database indexes ensured")

    except PyMongoError as e:
        logger.error(f"Index creation failed: {e}")
        raise
