from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class NotificationCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)


class NotificationResponse(BaseModel):
    id: str = Field(validation_alias="_id")
    group_id: str
    message: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)
