from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
from app.models.user import User


class UserRepository:
    """Participant profile database operations."""
    
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["users"]
    
    async def upsert_user(self, user_id: str, name: str) -> User:
        """Create the profile for an identity, or rename it if it exists."""
        now = datetime.now(timezone.utc)
        doc = await self.collection.find_one_and_update(
            {"_id": user_id},
            {
                "$set": {"name": name, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=True
        )
        return User(**doc)
    
    async def get_user(self, user_id: str) -> User | None:
        """Get user by ID."""
        doc = await self.collection.find_one({"_id": user_id})
        if doc:
            return User(**doc)
        return None
    
    async def get_users(self, user_ids: list[str]) -> list[User]:
        """Get the profiles that exist among the given IDs."""
        docs = await self.collection.find({"_id": {"$in": user_ids}}).to_list(None)
        return [User(**doc) for doc in docs]
