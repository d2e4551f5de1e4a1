from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class UserCreate(BaseModel):
    """Profile registration for the authenticated identity."""
    name: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    id: str = Field(validation_alias="_id")
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)
