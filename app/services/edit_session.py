"""
Ledger edit protocol - editor side.

A PaymentEditSession buffers field changes coming from an editor and
flushes each one to the store as an independent FieldEdit command:

- change(): buffer the value, flush after a quiet period of
  `debounce_seconds` (a later change to the same field restarts the wait)
- blur(): flush that field now
- insert() / remove(): flush everything pending first, then apply the
  structural command; remove() drops buffered edits of the removed entry

Seqs are handed out in submission order and submissions go through one
lock, so flushes of the same field reach the store in order. The store
ignores duplicates and stale seqs, which makes retries harmless. A flush
that fails for any reason other than validation puts its value back in
the buffer (unless a newer change replaced it) so the next flush resends it.

`store` is anything with LedgerEditService's coroutine signatures:
apply_field_edit(payment_id, edit, user_id), insert_entry(payment_id,
kind, user_id, key=None) and remove_entry(payment_id, kind, key, user_id).
"""

import asyncio
from typing import Any, Dict, Optional, Set, Tuple

import structlog

from app.core.config import settings
from app.models.base import new_id
from app.models.payment import EntryField, ListKind, Payment
from app.schemas.payment import FieldEdit
from app.utils.payment_validation import PaymentValidationError

logger = structlog.get_logger(__name__)

FieldKey = Tuple[ListKind, str, EntryField]


class PaymentEditSession:
    def __init__(
        self,
        store: Any,
        payment_id: str,
        user_id: str,
        debounce_seconds: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        self.store = store
        self.payment_id = payment_id
        self.user_id = user_id
        self.debounce_seconds = settings.EDIT_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.session_id = session_id or new_id()

        # last payment state acknowledged by the store
        self.payment: Optional[Payment] = None
        # per-field rejections; cleared by the next accepted flush of that field
        self.errors: Dict[FieldKey, PaymentValidationError] = {}

        self._seq = 0
        # last seq handed out per field
        self._issued: Dict[FieldKey, int] = {}
        self._pending: Dict[FieldKey, Any] = {}
        self._timers: Dict[FieldKey, asyncio.Task] = {}
        # debounced flushes past their quiet period, no longer cancellable
        self._inflight: Set[asyncio.Task] = set()
        self._removed: Set[str] = set()
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> Dict[FieldKey, Any]:
        return dict(self._pending)

    def change(self, kind: ListKind, key: str, field: EntryField, value: Any) -> None:
        """Buffer a new value and (re)start its quiet-period timer."""
        if key in self._removed:
            return
        field_key = (ListKind(kind), key, EntryField(field))
        self._pending[field_key] = value
        self._cancel_timer(field_key)
        self._timers[field_key] = asyncio.get_running_loop().create_task(self._flush_later(field_key))

    async def blur(self, kind: ListKind, key: str, field: EntryField) -> None:
        """The field lost focus: flush it without waiting."""
        field_key = (ListKind(kind), key, EntryField(field))
        self._cancel_timer(field_key)
        await self._flush(field_key)

    async def flush_all(self) -> None:
        if self._inflight:
            await asyncio.gather(*list(self._inflight))
        for field_key in list(self._pending):
            self._cancel_timer(field_key)
            await self._flush(field_key)

    async def insert(self, kind: ListKind, key: Optional[str] = None) -> str:
        """Flush pending edits, then append a blank entry. Returns its key."""
        await self.flush_all()
        async with self._lock:
            entry_key, self.payment = await self.store.insert_entry(self.payment_id, ListKind(kind), self.user_id, key=key)
        return entry_key

    async def remove(self, kind: ListKind, key: str) -> None:
        """Drop buffered edits of the entry, flush the rest, then remove it."""
        self._removed.add(key)
        self._discard(key)
        await self.flush_all()
        async with self._lock:
            self.payment = await self.store.remove_entry(self.payment_id, ListKind(kind), key, self.user_id)
        # anything buffered for the key while the remove was in flight loses
        self._discard(key)

    async def close(self) -> None:
        await self.flush_all()

    def _cancel_timer(self, field_key: FieldKey) -> None:
        timer = self._timers.pop(field_key, None)
        if timer is not None:
            timer.cancel()

    def _discard(self, key: str) -> None:
        for field_key in [fk for fk in self._pending if fk[1] == key]:
            self._cancel_timer(field_key)
            del self._pending[field_key]
        for field_key in [fk for fk in self.errors if fk[1] == key]:
            del self.errors[field_key]

    async def _flush_later(self, field_key: FieldKey) -> None:
        await asyncio.sleep(self.debounce_seconds)
        task = asyncio.current_task()
        self._timers.pop(field_key, None)
        self._inflight.add(task)
        try:
            await self._flush(field_key)
        except Exception:
            # the value is back in the buffer; flush_all() or the next blur resends it
            logger.exception("debounced_flush_failed", payment_id=self.payment_id, entry_key=field_key[1])
        finally:
            self._inflight.discard(task)

    async def _flush(self, field_key: FieldKey) -> None:
        if field_key not in self._pending:
            return
        value = self._pending.pop(field_key)
        kind, key, field = field_key

        self._seq += 1
        self._issued[field_key] = self._seq
        edit = FieldEdit(
            list_kind=kind,
            entry_key=key,
            field=field,
            value=value,
            session_id=self.session_id,
            seq=self._seq,
        )

        async with self._lock:
            try:
                self.payment = await self.store.apply_field_edit(self.payment_id, edit, self.user_id)
            except PaymentValidationError as exc:
                logger.info("field_edit_rejected", payment_id=self.payment_id, entry_key=key, field=field.value, code=exc.code)
                self.errors[field_key] = exc
                return
            except Exception:
                if key not in self._removed and self._issued[field_key] == edit.seq:
                    self._pending.setdefault(field_key, value)
                raise
        self.errors.pop(field_key, None)
