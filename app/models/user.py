from pydantic import Field
from app.models.base import MongoModel


class User(MongoModel):
    """A participant profile. `id` is the subject of the person's access token."""
    name: str = Field(..., min_length=1, max_length=100)
