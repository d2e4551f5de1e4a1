from typing import List
from fastapi import APIRouter, Depends, status
from app.core.auth import get_current_user_id
from app.schemas.group import GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse
from app.schemas.notification import NotificationCreate, NotificationResponse
from app.schemas.payment import PaymentCreate, PaymentResponse
from app.schemas.settlement import SettlementResponse
from app.services.group_service import GroupService
from app.services.ledger_edit import LedgerEditService
from app.services.notification_service import NotificationService
from app.services.settlement_service import SettlementService

router = APIRouter()

@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_in: GroupCreate,
    current_user_id: str = Depends(get_current_user_id)
):
    """Create a group; the creator is its first participant"""
    group = await GroupService.create(group_in, current_user_id)
    return GroupResponse.model_validate(group.to_document())

@router.get("/", response_model=List[GroupResponse])
async def list_my_groups(current_user_id: str = Depends(get_current_user_id)):
    """Groups the current user participates in"""
    groups = await GroupService.list_by_user(current_user_id)
    return [GroupResponse.model_validate(group.to_document()) for group in groups]

@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    """Get a group with its payments and notifications"""
    group, payments = await GroupService.get_with_payments(group_id, current_user_id)
    notifications = await NotificationService.list_by_group(group.id, current_user_id)
    return GroupDetailResponse.model_validate({
        **group.to_document(),
        "payments": [payment.to_document() for payment in payments],
        "notifications": [notification.to_document() for notification in notifications],
    })

@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_in: GroupUpdate,
    current_user_id: str = Depends(get_current_user_id)
):
    group = await GroupService.update(group_id, group_in, current_user_id)
    return GroupResponse.model_validate(group.to_document())

@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    """Delete a group and all of its payments"""
    await GroupService.delete(group_id, current_user_id)

@router.get("/{group_id}/payments", response_model=List[PaymentResponse])
async def list_group_payments(
    group_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    payments = await LedgerEditService.list_payments(group_id, current_user_id)
    return [PaymentResponse.model_validate(payment.to_document()) for payment in payments]

@router.post("/{group_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    group_id: str,
    payment_in: PaymentCreate,
    current_user_id: str = Depends(get_current_user_id)
):
    """Create an empty payment in the group"""
    payment = await LedgerEditService.create_payment(group_id, payment_in, current_user_id)
    return PaymentResponse.model_validate(payment.to_document())

@router.get("/{group_id}/settlement", response_model=SettlementResponse)
async def get_settlement(
    group_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    """Transfers that settle every balance in the group, recomputed on each read"""
    return await SettlementService.for_group(group_id, current_user_id)

@router.get("/{group_id}/notifications", response_model=List[NotificationResponse])
async def list_group_notifications(
    group_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    notifications = await NotificationService.list_by_group(group_id, current_user_id)
    return [NotificationResponse.model_validate(n.to_document()) for n in notifications]

@router.post("/{group_id}/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    group_id: str,
    notification_in: NotificationCreate,
    current_user_id: str = Depends(get_current_user_id)
):
    """Post a notification to the group"""
    notification = await NotificationService.create(group_id, notification_in, current_user_id)
    return NotificationResponse.model_validate(notification.to_document())

@router.get("/{group_id}/notifications/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    group_id: str,
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    notification = await NotificationService.get(group_id, notification_id, current_user_id)
    return NotificationResponse.model_validate(notification.to_document())

@router.delete("/{group_id}/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    group_id: str,
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    await NotificationService.delete(group_id, notification_id, current_user_id)
