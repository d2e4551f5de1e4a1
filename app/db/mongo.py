import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import settings

logger = structlog.get_logger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""
    
    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]
    
    # Create indexes
    await create_indexes()
    logger.info("mongo_connected", database=settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("mongo_disconnected")

async def create_indexes():
    """Create database indexes."""
    # Group membership lookups
    await mongodb.db["groups"].create_index("participants")
    
    # Payments and notifications are listed per group in creation order
    await mongodb.db["payments"].create_index([("group_id", 1), ("created_at", 1)])
    await mongodb.db["notifications"].create_index([("group_id", 1), ("created_at", 1)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db

async def get_database() -> AsyncIOMotorDatabase:
    """Return the active database connection (services await this)."""
    return mongodb.db
