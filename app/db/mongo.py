import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info(f"Connected to MongoDB: {settings.DATABASE_NAME}")

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Order codes are globally unique
    await db["orders"].create_index("code", unique=True)
    await db["orders"].create_index([("client_id", ASCENDING), ("created_at", DESCENDING)])
    await db["orders"].create_index([("created_at", DESCENDING)])

    # Payment ledger secondary indexes
    await db["payments"].create_index([("order_id", ASCENDING), ("created_at", DESCENDING)])
    await db["payments"].create_index([("client_id", ASCENDING), ("created_at", DESCENDING)])

    await db["clients"].create_index([("active", ASCENDING), ("created_at", DESCENDING)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db

def get_client() -> AsyncIOMotorClient:
    """Get client instance (needed to open sessions)."""
    return mongodb.client

def session_kwargs(session) -> dict:
    """Pass ``session`` to a driver call only when one is open."""
    return {"session": session} if session is not None else {}
