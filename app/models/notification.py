from pydantic import Field
from app.models.base import MongoModel


class Notification(MongoModel):
    """A message posted to a group's feed."""
    group_id: str
    message: str = Field(..., min_length=1, max_length=1000)
