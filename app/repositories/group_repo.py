from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone

from app.models.group import Group


class GroupRepository:
    """Group database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["groups"]

    async def create_group(self, group: Group) -> Group:
        await self.collection.insert_one(group.to_document())
        return group

    async def get_group(self, group_id: str) -> Group | None:
        doc = await self.collection.find_one({"_id": group_id})
        if doc:
            return Group(**doc)
        return None

    async def list_groups(self, user_id: str) -> list[Group]:
        """Groups the user participates in, newest first."""
        cursor = self.collection.find({"participants": user_id}).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [Group(**doc) for doc in docs]

    async def update_group(self, group_id: str, updates: dict) -> Group | None:
        if not updates:
            return await self.get_group(group_id)

        updates["updated_at"] = datetime.now(timezone.utc)
        result = await self.collection.find_one_and_update(
            {"_id": group_id},
            {"$set": updates},
            return_document=True
        )
        if result:
            return Group(**result)
        return None

    async def delete_group(self, group_id: str) -> bool:
        result = await self.collection.delete_one({"_id": group_id})
        return result.deleted_count > 0
