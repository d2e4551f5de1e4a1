from typing import List

import structlog
from fastapi import HTTPException, status

from app.db.mongo import get_database
from app.models.notification import Notification
from app.repositories.notification_repo import NotificationRepository
from app.schemas.notification import NotificationCreate
from app.services.group_service import GroupService

logger = structlog.get_logger(__name__)


class NotificationService:
    @staticmethod
    async def create(group_id: str, notification_in: NotificationCreate, user_id: str) -> Notification:
        """Post a notification to a group the user belongs to."""
        group = await GroupService.get_for_member(group_id, user_id)
        notification = Notification(group_id=group.id, message=notification_in.message)

        db = await get_database()
        await NotificationRepository(db).create_notification(notification)
        logger.info("notification_created", notification_id=notification.id, group_id=group.id)
        return notification

    @staticmethod
    async def list_by_group(group_id: str, user_id: str) -> List[Notification]:
        group = await GroupService.get_for_member(group_id, user_id)
        db = await get_database()
        return await NotificationRepository(db).list_by_group(group.id)

    @staticmethod
    async def get(group_id: str, notification_id: str, user_id: str) -> Notification:
        group = await GroupService.get_for_member(group_id, user_id)
        db = await get_database()
        notification = await NotificationRepository(db).get_notification(notification_id)
        # a notification is only reachable through the group it was posted to
        if not notification or notification.group_id != group.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
        return notification

    @staticmethod
    async def delete(group_id: str, notification_id: str, user_id: str) -> None:
        notification = await NotificationService.get(group_id, notification_id, user_id)
        db = await get_database()
        await NotificationRepository(db).delete_notification(notification.id)
        logger.info("notification_deleted", notification_id=notification.id, group_id=group_id)
