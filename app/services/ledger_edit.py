"""
Ledger edit protocol - store side.

Every change to a payment's creditor/debtor lists is one of three commands:
- field edit: set `user` or `amount` of entry `key` (idempotent per session seq)
- insert: append a blank entry with a fresh (or client-supplied) key
- remove: drop an entry by key and tombstone the key

Edits to unknown or removed keys are no-ops. A field edit is applied only
when its seq is newer than the last seq applied for the same
(entry, field, session), so retries and out-of-order flushes converge.
Edits from different sessions to the same field are last-write-wins.

The pure functions below mutate a Payment in memory and report whether
anything changed; LedgerEditService wraps them in a read/apply/save loop
against PaymentRepository.
"""

from typing import Callable, List, Optional, Tuple

import structlog
from fastapi import HTTPException, status

from app.core.config import settings
from app.db.mongo import get_database
from app.models.group import Group
from app.models.payment import AmountEntry, EntryField, ListKind, Payment
from app.repositories.group_repo import GroupRepository
from app.repositories.payment_repo import PaymentRepository
from app.schemas.payment import FieldEdit, PaymentCreate, PaymentUpdate
from app.services.group_service import GroupService, ensure_member
from app.utils.payment_validation import (
    ConcurrentModification,
    UnknownEntry,
    validate_amount,
    validate_entries,
    validate_participant,
)

logger = structlog.get_logger(__name__)

Operation = Callable[[Payment, Group], bool]


def validate_field_value(edit: FieldEdit, group: Group):
    field_path = f"{edit.list_kind.value}.{edit.entry_key}.{edit.field.value}"
    if edit.field == EntryField.USER:
        return validate_participant(edit.value, group.participants, field=field_path)
    return validate_amount(edit.value, field=field_path)


def apply_field_edit(payment: Payment, edit: FieldEdit) -> bool:
    """Apply a validated field edit. Raises UnknownEntry; returns False for stale or duplicate seqs."""
    entry = payment.find_entry(edit.list_kind, edit.entry_key)
    if entry is None:
        raise UnknownEntry(edit.entry_key)

    if edit.seq <= entry.last_seq(edit.field, edit.session_id):
        return False

    setattr(entry, edit.field.value, edit.value)
    entry.revisions.setdefault(edit.field.value, {})[edit.session_id] = edit.seq
    return True


def insert_entry(payment: Payment, kind: ListKind, key: Optional[str] = None) -> Tuple[str, bool]:
    """Append a blank entry. Returns (key, changed)."""
    if key is not None and payment.has_key(key):
        return key, False
    entry = AmountEntry() if key is None else AmountEntry(key=key)
    payment.entries(kind).append(entry)
    return entry.key, True


def remove_entry(payment: Payment, kind: ListKind, key: str) -> bool:
    entry = payment.find_entry(kind, key)
    if entry is None:
        raise UnknownEntry(key)
    payment.entries(kind).remove(entry)
    payment.removed_keys.append(key)
    return True


def replace_entries(payment: Payment, kind: ListKind, entries: List[AmountEntry]) -> None:
    """Swap a whole list; the old keys are tombstoned."""
    payment.removed_keys.extend(entry.key for entry in payment.entries(kind))
    if kind == ListKind.CREDITORS:
        payment.creditors = entries
    else:
        payment.debtors = entries


class LedgerEditService:
    @staticmethod
    async def _load(payment_id: str, user_id: str) -> Tuple[Payment, Group]:
        db = await get_database()
        payment = await PaymentRepository(db).get_payment(payment_id)
        if not payment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
        group = await GroupRepository(db).get_group(payment.group_id)
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        ensure_member(group, user_id)
        return payment, group

    @staticmethod
    async def _mutate(payment_id: str, user_id: str, operation: Operation) -> Payment:
        """
        Read, apply, write back under the payment's version lock.

        A lost race re-reads and re-applies; after PAYMENT_WRITE_RETRIES
        attempts ConcurrentModification is raised. UnknownEntry from the
        operation is swallowed and the current payment returned.
        """
        db = await get_database()
        repo = PaymentRepository(db)

        for attempt in range(1, settings.PAYMENT_WRITE_RETRIES + 1):
            payment, group = await LedgerEditService._load(payment_id, user_id)
            try:
                changed = operation(payment, group)
            except UnknownEntry as exc:
                logger.info("unknown_entry_ignored", payment_id=payment_id, entry_key=exc.key)
                return payment

            if not changed:
                return payment
            if await repo.save_payment(payment):
                return payment

            logger.warning("payment_version_conflict", payment_id=payment_id, attempt=attempt)

        raise ConcurrentModification(f"Payment {payment_id} changed during {settings.PAYMENT_WRITE_RETRIES} attempts")

    @staticmethod
    async def create_payment(group_id: str, payment_in: PaymentCreate, user_id: str) -> Payment:
        """Create an empty payment in a group."""
        group = await GroupService.get_for_member(group_id, user_id)
        payment = Payment(group_id=group.id, title=payment_in.title)

        db = await get_database()
        await PaymentRepository(db).create_payment(payment)
        logger.info("payment_created", payment_id=payment.id, group_id=group.id)
        return payment

    @staticmethod
    async def get_payment(payment_id: str, user_id: str) -> Payment:
        payment, _ = await LedgerEditService._load(payment_id, user_id)
        return payment

    @staticmethod
    async def list_payments(group_id: str, user_id: str) -> List[Payment]:
        _, payments = await GroupService.get_with_payments(group_id, user_id)
        return payments

    @staticmethod
    async def update_payment(payment_id: str, payment_in: PaymentUpdate, user_id: str) -> Payment:
        """Update the title and/or replace whole entry lists (validated as one unit)."""

        def operation(payment: Payment, group: Group) -> bool:
            creditors = payment_in.creditors
            debtors = payment_in.debtors
            validate_entries(creditors or [], debtors or [], group.participants)

            changed = False
            if payment_in.title is not None and payment_in.title != payment.title:
                payment.title = payment_in.title
                changed = True
            if creditors is not None:
                replace_entries(payment, ListKind.CREDITORS, [AmountEntry(user=e.user, amount=e.amount) for e in creditors])
                changed = True
            if debtors is not None:
                replace_entries(payment, ListKind.DEBTORS, [AmountEntry(user=e.user, amount=e.amount) for e in debtors])
                changed = True
            return changed

        return await LedgerEditService._mutate(payment_id, user_id, operation)

    @staticmethod
    async def delete_payment(payment_id: str, user_id: str) -> None:
        payment, _ = await LedgerEditService._load(payment_id, user_id)
        db = await get_database()
        await PaymentRepository(db).delete_payment(payment.id)
        logger.info("payment_deleted", payment_id=payment.id, group_id=payment.group_id)

    @staticmethod
    async def apply_field_edit(payment_id: str, edit: FieldEdit, user_id: str) -> Payment:
        """
        Set one field of one entry.

        UnknownParticipant / InvalidAmount propagate and nothing is written;
        other fields of the payment are unaffected.
        """

        def operation(payment: Payment, group: Group) -> bool:
            if payment.find_entry(edit.list_kind, edit.entry_key) is None:
                raise UnknownEntry(edit.entry_key)
            value = validate_field_value(edit, group)
            return apply_field_edit(payment, edit.model_copy(update={"value": value}))

        payment = await LedgerEditService._mutate(payment_id, user_id, operation)
        logger.debug(
            "field_edit",
            payment_id=payment_id,
            entry_key=edit.entry_key,
            field=edit.field.value,
            session_id=edit.session_id,
            seq=edit.seq,
        )
        return payment

    @staticmethod
    async def insert_entry(payment_id: str, kind: ListKind, user_id: str, key: Optional[str] = None) -> Tuple[str, Payment]:
        inserted: List[str] = []

        def operation(payment: Payment, group: Group) -> bool:
            entry_key, changed = insert_entry(payment, kind, key)
            inserted[:] = [entry_key]
            return changed

        payment = await LedgerEditService._mutate(payment_id, user_id, operation)
        logger.info("entry_inserted", payment_id=payment_id, list_kind=kind.value, entry_key=inserted[0])
        return inserted[0], payment

    @staticmethod
    async def remove_entry(payment_id: str, kind: ListKind, key: str, user_id: str) -> Payment:
        payment = await LedgerEditService._mutate(
            payment_id, user_id, lambda payment, group: remove_entry(payment, kind, key)
        )
        logger.info("entry_removed", payment_id=payment_id, list_kind=kind.value, entry_key=key)
        return payment
