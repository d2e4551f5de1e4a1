from typing import Optional
from fastapi import APIRouter, Depends, status
from app.core.auth import get_current_user_id
from app.models.payment import EntryField, ListKind
from app.schemas.payment import (
    EntryInsertRequest,
    EntryInsertResponse,
    FieldEdit,
    FieldEditRequest,
    PaymentResponse,
    PaymentUpdate,
)
from app.services.ledger_edit import LedgerEditService

router = APIRouter()

@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    payment = await LedgerEditService.get_payment(payment_id, current_user_id)
    return PaymentResponse.model_validate(payment.to_document())

@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: str,
    payment_in: PaymentUpdate,
    current_user_id: str = Depends(get_current_user_id)
):
    """Update the title and/or replace creditor and debtor lists as a unit"""
    payment = await LedgerEditService.update_payment(payment_id, payment_in, current_user_id)
    return PaymentResponse.model_validate(payment.to_document())

@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: str,
    current_user_id: str = Depends(get_current_user_id)
):
    await LedgerEditService.delete_payment(payment_id, current_user_id)

@router.post("/{payment_id}/{list_kind}/entries", response_model=EntryInsertResponse, status_code=status.HTTP_201_CREATED)
async def insert_entry(
    payment_id: str,
    list_kind: ListKind,
    body: Optional[EntryInsertRequest] = None,
    current_user_id: str = Depends(get_current_user_id)
):
    """Append a blank creditor/debtor entry"""
    key = body.key if body else None
    entry_key, payment = await LedgerEditService.insert_entry(payment_id, list_kind, current_user_id, key=key)
    return EntryInsertResponse(
        key=entry_key,
        payment=PaymentResponse.model_validate(payment.to_document())
    )

@router.delete("/{payment_id}/{list_kind}/entries/{entry_key}", response_model=PaymentResponse)
async def remove_entry(
    payment_id: str,
    list_kind: ListKind,
    entry_key: str,
    current_user_id: str = Depends(get_current_user_id)
):
    """Remove an entry by key; removing an unknown key is a no-op"""
    payment = await LedgerEditService.remove_entry(payment_id, list_kind, entry_key, current_user_id)
    return PaymentResponse.model_validate(payment.to_document())

@router.put("/{payment_id}/{list_kind}/entries/{entry_key}/{field}", response_model=PaymentResponse)
async def edit_entry_field(
    payment_id: str,
    list_kind: ListKind,
    entry_key: str,
    field: EntryField,
    body: FieldEditRequest,
    current_user_id: str = Depends(get_current_user_id)
):
    """Flush one field of one entry; repeated or stale flushes are no-ops"""
    edit = FieldEdit(
        list_kind=list_kind,
        entry_key=entry_key,
        field=field,
        value=body.value,
        session_id=body.session_id,
        seq=body.seq,
    )
    payment = await LedgerEditService.apply_field_edit(payment_id, edit, current_user_id)
    return PaymentResponse.model_validate(payment.to_document())
