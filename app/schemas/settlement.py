from typing import List, Optional
from pydantic import BaseModel
from app.utils.payment_validation import AttentionReason


class Transfer(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: int
    from_user_name: Optional[str] = None
    to_user_name: Optional[str] = None


class Balance(BaseModel):
    user_id: str
    net: int  # positive: is owed money, negative: owes money
    name: Optional[str] = None  # profile name, if the participant registered one


class AttentionItem(BaseModel):
    """A payment left out of the settlement."""
    payment_id: str
    title: str
    reason: AttentionReason
    creditor_total: int
    debtor_total: int


class SettlementResponse(BaseModel):
    group_id: str
    transfers: List[Transfer]
    balances: List[Balance]
    needs_attention: List[AttentionItem] = []
