"""Amount entry validation and the payment error taxonomy."""
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from app.models.payment import Payment


class PaymentValidationError(Exception):
    """A submitted payment edit was rejected. Carries one error per offending field."""
    code = "invalid_payment"

    def __init__(self, message: str, field: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        if errors is None:
            errors = [{"field": field, "code": self.code, "message": message}]
        self.errors = errors


class UnknownParticipant(PaymentValidationError):
    """Entry references someone who is not a member of the payment's group."""
    code = "unknown_participant"


class InvalidAmount(PaymentValidationError):
    """Amount is not a positive integer in minor units."""
    code = "invalid_amount"


class UnknownEntry(Exception):
    """Edit or remove targets an entry key that does not exist (anymore)."""

    def __init__(self, key: str):
        super().__init__(f"Unknown amount entry: {key}")
        self.key = key


class ConcurrentModification(Exception):
    """The payment kept changing underneath a write."""
    pass


class AttentionReason(str, Enum):
    """Why a payment is left out of settlement."""
    UNBALANCED = "unbalanced"
    INCOMPLETE = "incomplete"
    UNKNOWN_PARTICIPANT = "unknown_participant"


def validate_participant(user: Any, participants: Iterable[str], field: Optional[str] = None) -> str:
    if not isinstance(user, str) or user not in participants:
        raise UnknownParticipant(f"{user!r} is not a member of this group", field=field)
    return user


def validate_amount(amount: Any, field: Optional[str] = None) -> int:
    # bool is an int subclass; True is not an amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {amount!r}", field=field)
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}", field=field)
    return amount


def validate_entries(creditors: Sequence, debtors: Sequence, participants: Iterable[str]) -> None:
    """
    Validate candidate creditor and debtor lists as one submission.

    Rules:
    - every entry's user is a current group member
    - every entry's amount is a positive integer
    Sums are not compared here; edits arrive incrementally.

    Raises a single PaymentValidationError listing every failing field, so
    neither list is accepted without the other.
    """
    participants = set(participants)
    errors: List[dict] = []
    for kind, entries in (("creditors", creditors), ("debtors", debtors)):
        for index, entry in enumerate(entries):
            try:
                validate_participant(entry.user, participants, field=f"{kind}.{index}.user")
            except UnknownParticipant as exc:
                errors.extend(exc.errors)
            try:
                validate_amount(entry.amount, field=f"{kind}.{index}.amount")
            except InvalidAmount as exc:
                errors.extend(exc.errors)
    if errors:
        raise PaymentValidationError("Payment entries are invalid", errors=errors)


def check_settleable(payment: Payment, participants: Iterable[str]) -> Optional[AttentionReason]:
    """
    Read-time check before a payment is counted in balances.

    Fully blank entries (freshly inserted rows) are ignored. Returns None
    when the payment can be settled, otherwise the reason it needs attention.
    """
    participants = set(participants)
    filled = [e for e in payment.creditors + payment.debtors if not e.is_blank()]
    if any(not e.is_complete() for e in filled):
        return AttentionReason.INCOMPLETE
    if any(e.user not in participants for e in filled):
        return AttentionReason.UNKNOWN_PARTICIPANT
    creditor_total, debtor_total = payment.totals()
    if creditor_total != debtor_total:
        return AttentionReason.UNBALANCED
    return None
