from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from app.schemas.notification import NotificationResponse
from app.schemas.payment import PaymentResponse


class GroupCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class GroupUpdate(BaseModel):
    """Partial update; omitted fields are kept."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    participants: Optional[List[str]] = None


class GroupResponse(BaseModel):
    id: str = Field(validation_alias="_id")
    title: str
    participants: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class GroupDetailResponse(GroupResponse):
    """Group together with the payments and notifications it owns."""
    payments: List[PaymentResponse] = []
    notifications: List[NotificationResponse] = []
