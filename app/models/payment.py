"""
Payment model - one shared payment inside a group.

Design principles:
- Creditors paid, debtors owe; direction is list membership, amounts are >= 1
- All amounts in integer minor units (e.g. cents, yen)
- Each amount entry has a stable `key`; inserts/removes act on keys, never indexes
- Entries start blank and are filled field by field
- `revisions` records the last applied seq per (field, editing session)
- `removed_keys` keeps tombstones so late edits to removed entries are ignored
- `version` is the optimistic lock for whole-document writes
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from app.models.base import MongoModel, new_id


class ListKind(str, Enum):
    CREDITORS = "creditors"
    DEBTORS = "debtors"


class EntryField(str, Enum):
    USER = "user"
    AMOUNT = "amount"


class AmountEntry(BaseModel):
    key: str = Field(default_factory=new_id)
    user: Optional[str] = None
    amount: Optional[int] = None
    revisions: Dict[str, Dict[str, int]] = {}

    def is_blank(self) -> bool:
        return self.user is None and self.amount is None

    def is_complete(self) -> bool:
        return self.user is not None and self.amount is not None

    def last_seq(self, field: EntryField, session_id: str) -> int:
        return self.revisions.get(field.value, {}).get(session_id, 0)


class Payment(MongoModel):
    group_id: str
    title: str = ""
    creditors: List[AmountEntry] = []
    debtors: List[AmountEntry] = []
    removed_keys: List[str] = []
    version: int = 1

    def entries(self, kind: ListKind) -> List[AmountEntry]:
        return self.creditors if kind == ListKind.CREDITORS else self.debtors

    def find_entry(self, kind: ListKind, key: str) -> Optional[AmountEntry]:
        for entry in self.entries(kind):
            if entry.key == key:
                return entry
        return None

    def has_key(self, key: str) -> bool:
        """True if the key is live in either list or has been removed."""
        if key in self.removed_keys:
            return True
        return any(entry.key == key for entry in self.creditors + self.debtors)

    def totals(self) -> Tuple[int, int]:
        """(creditor total, debtor total), ignoring unset amounts."""
        return (
            sum(e.amount or 0 for e in self.creditors),
            sum(e.amount or 0 for e in self.debtors),
        )
