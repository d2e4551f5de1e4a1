from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.notification import Notification


class NotificationRepository:
    """Group notification database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["notifications"]

    async def create_notification(self, notification: Notification) -> Notification:
        await self.collection.insert_one(notification.to_document())
        return notification

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        doc = await self.collection.find_one({"_id": notification_id})
        if doc:
            return Notification(**doc)
        return None

    async def list_by_group(self, group_id: str) -> List[Notification]:
        """Notifications of a group, oldest first."""
        cursor = self.collection.find({"group_id": group_id}).sort("created_at", 1)
        docs = await cursor.to_list(None)
        return [Notification(**doc) for doc in docs]

    async def delete_notification(self, notification_id: str) -> bool:
        result = await self.collection.delete_one({"_id": notification_id})
        return result.deleted_count > 0

    async def delete_by_group(self, group_id: str) -> int:
        result = await self.collection.delete_many({"group_id": group_id})
        return result.deleted_count
