"""
Settlement engine - who pays whom, and how much.

Algorithm:
1. Leave out payments that cannot be settled (unbalanced, incomplete,
   referencing non-members) and report them as needing attention
2. Net balance per participant: paid as creditor minus owed as debtor
3. Repeatedly match the largest creditor with the largest debtor and
   transfer min(|credit|, |debt|); ties go to the smaller participant id
4. Each step zeroes at least one balance, so there are at most
   (participants with a nonzero balance - 1) transfers

Greedy largest-to-largest is a heuristic; the exact minimum transfer count
is NP-hard in general. Output is recomputed on every read and never stored.
"""

from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from app.db.mongo import get_database
from app.models.group import Group
from app.models.payment import Payment
from app.repositories.user_repo import UserRepository
from app.schemas.settlement import AttentionItem, Balance, SettlementResponse, Transfer
from app.services.group_service import GroupService
from app.utils.payment_validation import check_settleable

logger = structlog.get_logger(__name__)


def compute_balances(payments: Iterable[Payment]) -> Dict[str, int]:
    """Net balance per participant across the given payments."""
    balances: Dict[str, int] = {}
    for payment in payments:
        for entry in payment.creditors:
            if entry.is_complete():
                balances[entry.user] = balances.get(entry.user, 0) + entry.amount
        for entry in payment.debtors:
            if entry.is_complete():
                balances[entry.user] = balances.get(entry.user, 0) - entry.amount
    return balances


def _largest(amounts: Dict[str, int]) -> str:
    return min(amounts, key=lambda user_id: (-amounts[user_id], user_id))


def match_transfers(balances: Dict[str, int]) -> List[Transfer]:
    """
    Reduce net balances to pairwise transfers.

    Returns transfers in the order they were generated.
    """
    creditors = {uid: amt for uid, amt in balances.items() if amt > 0}
    debtors = {uid: -amt for uid, amt in balances.items() if amt < 0}

    transfers: List[Transfer] = []
    while creditors and debtors:
        creditor_id = _largest(creditors)
        debtor_id = _largest(debtors)
        amount = min(creditors[creditor_id], debtors[debtor_id])

        transfers.append(Transfer(from_user_id=debtor_id, to_user_id=creditor_id, amount=amount))

        creditors[creditor_id] -= amount
        debtors[debtor_id] -= amount
        if creditors[creditor_id] == 0:
            del creditors[creditor_id]
        if debtors[debtor_id] == 0:
            del debtors[debtor_id]

    return transfers


def compute_settlement(
    group: Group,
    payments: Sequence[Payment],
    names: Optional[Dict[str, str]] = None,
) -> SettlementResponse:
    """Settle a group snapshot. Pure: no I/O, no shared state.

    `names` maps user ids to profile names; unknown ids are left unnamed.
    """
    names = names or {}
    settleable: List[Payment] = []
    needs_attention: List[AttentionItem] = []

    for payment in payments:
        reason = check_settleable(payment, group.participants)
        if reason is None:
            settleable.append(payment)
            continue
        creditor_total, debtor_total = payment.totals()
        needs_attention.append(AttentionItem(
            payment_id=payment.id,
            title=payment.title,
            reason=reason,
            creditor_total=creditor_total,
            debtor_total=debtor_total,
        ))

    balances = compute_balances(settleable)
    for user_id in group.participants:
        balances.setdefault(user_id, 0)

    if needs_attention:
        logger.info(
            "settlement_payments_excluded",
            group_id=group.id,
            payment_ids=[item.payment_id for item in needs_attention],
        )

    transfers = match_transfers(balances)
    for transfer in transfers:
        transfer.from_user_name = names.get(transfer.from_user_id)
        transfer.to_user_name = names.get(transfer.to_user_id)

    return SettlementResponse(
        group_id=group.id,
        transfers=transfers,
        balances=[Balance(user_id=uid, net=balances[uid], name=names.get(uid)) for uid in sorted(balances)],
        needs_attention=needs_attention,
    )


class SettlementService:
    @staticmethod
    async def for_group(group_id: str, user_id: str) -> SettlementResponse:
        """Load a group the user belongs to and settle it from its stored payments."""
        group, payments = await GroupService.get_with_payments(group_id, user_id)
        db = await get_database()
        users = await UserRepository(db).get_users(group.participants)
        return compute_settlement(group, payments, names={user.id: user.name for user in users})
