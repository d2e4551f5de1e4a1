from typing import List, Tuple

import structlog
from fastapi import HTTPException, status

from app.db.mongo import get_database
from app.models.group import Group
from app.models.payment import Payment
from app.repositories.group_repo import GroupRepository
from app.repositories.notification_repo import NotificationRepository
from app.repositories.payment_repo import PaymentRepository
from app.schemas.group import GroupCreate, GroupUpdate

logger = structlog.get_logger(__name__)


def ensure_member(group: Group, user_id: str) -> None:
    if not group.is_member(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a participant of this group"
        )


class GroupService:
    @staticmethod
    async def create(group_in: GroupCreate, user_id: str) -> Group:
        """Create a group with the creator as its first participant."""
        db = await get_database()
        group = Group(title=group_in.title, participants=[user_id])
        await GroupRepository(db).create_group(group)
        logger.info("group_created", group_id=group.id, user_id=user_id)
        return group

    @staticmethod
    async def list_by_user(user_id: str) -> List[Group]:
        db = await get_database()
        return await GroupRepository(db).list_groups(user_id)

    @staticmethod
    async def get_for_member(group_id: str, user_id: str) -> Group:
        db = await get_database()
        group = await GroupRepository(db).get_group(group_id)
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        ensure_member(group, user_id)
        return group

    @staticmethod
    async def get_with_payments(group_id: str, user_id: str) -> Tuple[Group, List[Payment]]:
        group = await GroupService.get_for_member(group_id, user_id)
        db = await get_database()
        payments = await PaymentRepository(db).list_by_group(group.id)
        return group, payments

    @staticmethod
    async def update(group_id: str, group_in: GroupUpdate, user_id: str) -> Group:
        await GroupService.get_for_member(group_id, user_id)

        updates = {}
        if group_in.title is not None:
            updates["title"] = group_in.title
        if group_in.participants is not None:
            participants = list(dict.fromkeys(group_in.participants))
            if not participants:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A group needs at least one participant"
                )
            updates["participants"] = participants

        db = await get_database()
        group = await GroupRepository(db).update_group(group_id, updates)
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        return group

    @staticmethod
    async def delete(group_id: str, user_id: str) -> None:
        """Delete a group with every payment and notification it owns."""
        await GroupService.get_for_member(group_id, user_id)
        db = await get_database()
        deleted_payments = await PaymentRepository(db).delete_by_group(group_id)
        deleted_notifications = await NotificationRepository(db).delete_by_group(group_id)
        await GroupRepository(db).delete_group(group_id)
        logger.info(
            "group_deleted",
            group_id=group_id,
            payments=deleted_payments,
            notifications=deleted_notifications,
        )
