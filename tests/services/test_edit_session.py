import asyncio

import pytest

from app.models.payment import EntryField, ListKind
from app.services.edit_session import PaymentEditSession
from app.services.ledger_edit import LedgerEditService
from app.utils.payment_validation import ConcurrentModification, InvalidAmount
from conftest import ALICE, BOB

CREDITORS = ListKind.CREDITORS
AMOUNT = EntryField.AMOUNT
USER = EntryField.USER

QUIET = 0.02


class RecordingStore:
    """Collects the commands a session sends, in arrival order."""

    def __init__(self):
        self.calls = []

    async def apply_field_edit(self, payment_id, edit, user_id):
        self.calls.append(("edit", edit.entry_key, edit.field, edit.value, edit.seq))
        if edit.field == AMOUNT and edit.value == 0:
            raise InvalidAmount("Amount must be positive, got 0", field="amount")
        return None

    async def insert_entry(self, payment_id, kind, user_id, key=None):
        self.calls.append(("insert", kind))
        return key or "new-key", None

    async def remove_entry(self, payment_id, kind, key, user_id):
        self.calls.append(("remove", key))
        return None


class FlakyStore(RecordingStore):
    """Fails the first `failures` field edits as if the write lost every retry."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures

    async def apply_field_edit(self, payment_id, edit, user_id):
        if self.failures:
            self.failures -= 1
            raise ConcurrentModification("payment kept changing")
        return await super().apply_field_edit(payment_id, edit, user_id)


class SlowStore(RecordingStore):
    """Acknowledges field edits only after `delay` seconds."""

    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    async def apply_field_edit(self, payment_id, edit, user_id):
        await asyncio.sleep(self.delay)
        return await super().apply_field_edit(payment_id, edit, user_id)


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.mark.asyncio
async def test_changes_are_debounced_into_one_flush(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=QUIET)

    session.change(CREDITORS, "k1", AMOUNT, 1)
    session.change(CREDITORS, "k1", AMOUNT, 12)
    session.change(CREDITORS, "k1", AMOUNT, 120)
    await asyncio.sleep(QUIET * 5)

    assert recording_store.calls == [("edit", "k1", AMOUNT, 120, 1)]
    assert session.pending == {}


@pytest.mark.asyncio
async def test_blur_flushes_without_waiting(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", USER, BOB)
    await session.blur(CREDITORS, "k1", USER)

    assert recording_store.calls == [("edit", "k1", USER, BOB, 1)]


@pytest.mark.asyncio
async def test_different_fields_flush_independently(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", USER, BOB)
    session.change(CREDITORS, "k1", AMOUNT, 300)
    await session.blur(CREDITORS, "k1", AMOUNT)

    assert recording_store.calls == [("edit", "k1", AMOUNT, 300, 1)]
    assert list(session.pending) == [(CREDITORS, "k1", USER)]
    await session.close()


@pytest.mark.asyncio
async def test_insert_flushes_pending_edits_first(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    key = await session.insert(CREDITORS)

    assert key == "new-key"
    assert recording_store.calls == [("edit", "k1", AMOUNT, 300, 1), ("insert", CREDITORS)]


@pytest.mark.asyncio
async def test_remove_discards_buffered_edits_of_removed_entry(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    session.change(CREDITORS, "k2", AMOUNT, 500)
    await session.remove(CREDITORS, "k1")
    session.change(CREDITORS, "k1", AMOUNT, 999)
    await session.close()

    assert recording_store.calls == [("edit", "k2", AMOUNT, 500, 1), ("remove", "k1")]


@pytest.mark.asyncio
async def test_rejected_field_keeps_error_until_fixed(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)
    field_key = (CREDITORS, "k1", AMOUNT)

    session.change(CREDITORS, "k1", USER, BOB)
    session.change(CREDITORS, "k1", AMOUNT, 0)
    await session.flush_all()

    assert set(session.errors) == {field_key}
    assert session.errors[field_key].code == "invalid_amount"

    session.change(CREDITORS, "k1", AMOUNT, 50)
    await session.blur(CREDITORS, "k1", AMOUNT)

    assert session.errors == {}


@pytest.mark.asyncio
async def test_seqs_follow_submission_order(recording_store):
    session = PaymentEditSession(recording_store, "p1", ALICE, debounce_seconds=60)

    for value in (100, 200, 300):
        session.change(CREDITORS, "k1", AMOUNT, value)
        await session.blur(CREDITORS, "k1", AMOUNT)

    assert [call[4] for call in recording_store.calls] == [1, 2, 3]
    assert [call[3] for call in recording_store.calls] == [100, 200, 300]


@pytest.mark.asyncio
async def test_session_against_store_converges(store, stored_payment):
    _, payments = store
    session = PaymentEditSession(LedgerEditService, stored_payment.id, ALICE, debounce_seconds=QUIET)

    payer = await session.insert(CREDITORS)
    ower = await session.insert(ListKind.DEBTORS)
    session.change(CREDITORS, payer, USER, ALICE)
    session.change(CREDITORS, payer, AMOUNT, 900)
    session.change(ListKind.DEBTORS, ower, USER, BOB)
    session.change(ListKind.DEBTORS, ower, AMOUNT, 900)
    await asyncio.sleep(QUIET * 5)

    doomed = await session.insert(ListKind.DEBTORS)
    session.change(ListKind.DEBTORS, doomed, AMOUNT, 50)
    await session.remove(ListKind.DEBTORS, doomed)
    await session.close()

    stored = payments.payments[stored_payment.id]
    assert [(e.user, e.amount) for e in stored.creditors] == [(ALICE, 900)]
    assert [(e.user, e.amount) for e in stored.debtors] == [(BOB, 900)]
    assert doomed in stored.removed_keys
    assert session.payment.version == stored.version


@pytest.mark.asyncio
async def test_failed_blur_keeps_value_for_next_flush():
    store = FlakyStore()
    session = PaymentEditSession(store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    with pytest.raises(ConcurrentModification):
        await session.blur(CREDITORS, "k1", AMOUNT)

    assert session.pending == {(CREDITORS, "k1", AMOUNT): 300}
    assert session.errors == {}

    await session.flush_all()

    assert store.calls == [("edit", "k1", AMOUNT, 300, 2)]
    assert session.pending == {}


@pytest.mark.asyncio
async def test_failed_debounced_flush_is_resent_on_close():
    store = FlakyStore()
    session = PaymentEditSession(store, "p1", ALICE, debounce_seconds=QUIET)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    await asyncio.sleep(QUIET * 5)

    assert store.calls == []
    assert session.pending == {(CREDITORS, "k1", AMOUNT): 300}

    await session.close()

    assert store.calls == [("edit", "k1", AMOUNT, 300, 2)]


@pytest.mark.asyncio
async def test_failed_flush_does_not_resurrect_older_value():
    store = FlakyStore()
    session = PaymentEditSession(store, "p1", ALICE, debounce_seconds=60)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    with pytest.raises(ConcurrentModification):
        await session.blur(CREDITORS, "k1", AMOUNT)
    session.change(CREDITORS, "k1", AMOUNT, 400)
    await session.close()

    assert store.calls == [("edit", "k1", AMOUNT, 400, 2)]


@pytest.mark.asyncio
async def test_close_waits_for_debounced_flush_in_flight():
    store = SlowStore(delay=QUIET * 5)
    session = PaymentEditSession(store, "p1", ALICE, debounce_seconds=QUIET)

    session.change(CREDITORS, "k1", AMOUNT, 300)
    # past the quiet period: the flush has left the buffer but is not acknowledged yet
    await asyncio.sleep(QUIET * 2)
    assert session.pending == {}
    assert store.calls == []

    await session.close()

    assert store.calls == [("edit", "k1", AMOUNT, 300, 1)]
