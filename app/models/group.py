from typing import List
from pydantic import Field
from app.models.base import MongoModel


class Group(MongoModel):
    title: str = Field(..., min_length=1, max_length=200)
    participants: List[str] = []

    def is_member(self, user_id: str) -> bool:
        return user_id in self.participants
