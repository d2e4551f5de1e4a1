"""
PaymentRepository - the ledger store for payments.

Writes are whole-document replacements guarded by `version`
(optimistic locking): a save only lands if nobody else saved since
the document was read. Callers re-read and re-apply on a lost race.
"""

from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.payment import Payment


class PaymentRepository:
    """Payment database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["payments"]

    async def create_payment(self, payment: Payment) -> Payment:
        await self.collection.insert_one(payment.to_document())
        return payment

    async def get_payment(self, payment_id: str) -> Optional[Payment]:
        doc = await self.collection.find_one({"_id": payment_id})
        if doc:
            return Payment(**doc)
        return None

    async def list_by_group(self, group_id: str) -> List[Payment]:
        """All payments of a group, oldest first."""
        cursor = self.collection.find({"group_id": group_id}).sort("created_at", 1)
        docs = await cursor.to_list(None)
        return [Payment(**doc) for doc in docs]

    async def save_payment(self, payment: Payment) -> bool:
        """
        Write back a payment read earlier.

        Bumps `version` and `updated_at` on the model. Returns False (and
        leaves the stored document untouched) if the stored version moved on.
        """
        expected_version = payment.version
        payment.version = expected_version + 1
        payment.touch()

        result = await self.collection.replace_one(
            {"_id": payment.id, "version": expected_version},
            payment.to_document()
        )
        if result.matched_count == 0:
            payment.version = expected_version
            return False
        return True

    async def delete_payment(self, payment_id: str) -> bool:
        result = await self.collection.delete_one({"_id": payment_id})
        return result.deleted_count > 0

    async def delete_by_group(self, group_id: str) -> int:
        """Delete every payment owned by a group."""
        result = await self.collection.delete_many({"group_id": group_id})
        return result.deleted_count
