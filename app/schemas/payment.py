from typing import Any, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from app.models.payment import EntryField, ListKind


class AmountEntryIn(BaseModel):
    # left untyped so payment_validation rejects bools and numeric strings per field
    user: Any
    amount: Any

    model_config = {"from_attributes": True}


class PaymentCreate(BaseModel):
    title: str = Field("", max_length=200)


class PaymentUpdate(BaseModel):
    """Title and/or whole-list replacement. Lists are validated together."""
    title: Optional[str] = Field(None, max_length=200)
    creditors: Optional[List[AmountEntryIn]] = None
    debtors: Optional[List[AmountEntryIn]] = None


class FieldEditRequest(BaseModel):
    """Body of a single field flush from an editing session."""
    value: Any = None
    session_id: str = Field(..., min_length=1)
    seq: int = Field(..., ge=1)


class EntryInsertRequest(BaseModel):
    key: Optional[str] = None  # client-chosen key makes a retried insert idempotent


class FieldEdit(BaseModel):
    """Set `field` of entry `entry_key` in `list_kind` to `value`."""
    list_kind: ListKind
    entry_key: str
    field: EntryField
    value: Any = None
    session_id: str
    seq: int


class AmountEntryResponse(BaseModel):
    key: str
    user: Optional[str] = None
    amount: Optional[int] = None


class PaymentResponse(BaseModel):
    id: str = Field(validation_alias="_id")
    group_id: str
    title: str
    creditors: List[AmountEntryResponse]
    debtors: List[AmountEntryResponse]
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class EntryInsertResponse(BaseModel):
    key: str
    payment: PaymentResponse
