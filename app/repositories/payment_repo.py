"""
PaymentRepository - the payment ledger.

Payments are append-only apart from two explicit exceptions: corrections of
amount/medium/confirmed/note, and physical deletion. Both go through the
ledger engine, which rebuilds the owning order afterwards.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongo import session_kwargs
from app.models.payment import Payment

CORRECTABLE_FIELDS = ("amount", "medium", "confirmed", "note")
# May be explicitly cleared by a correction
NULLABLE_FIELDS = ("medium",)
# Set by the ledger engine alongside a confirmation change, never by callers
DERIVED_FIELDS = ("installment_number",)


class PaymentRepository:
    """Repository for payment records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["payments"]

    async def insert_payment(self, payment_doc: Dict[str, Any], session=None) -> Payment:
        result = await self.collection.insert_one(payment_doc, **session_kwargs(session))
        payment_doc["_id"] = result.inserted_id
        return Payment(**payment_doc)

    async def get_payment(self, payment_id: str, session=None) -> Optional[Payment]:
        if not ObjectId.is_valid(str(payment_id)):
            return None
        doc = await self.collection.find_one(
            {"_id": ObjectId(str(payment_id))}, **session_kwargs(session)
        )
        if doc:
            return Payment(**doc)
        return None

    async def list_payments(
        self,
        order_id: Optional[str] = None,
        client_id: Optional[str] = None,
        session=None
    ) -> List[Payment]:
        """List payments newest first, filtered by order and/or client."""
        query: Dict[str, Any] = {}
        for field, value in (("order_id", order_id), ("client_id", client_id)):
            if value is None:
                continue
            if not ObjectId.is_valid(str(value)):
                return []
            query[field] = ObjectId(str(value))

        cursor = self.collection.find(query, **session_kwargs(session)).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [Payment(**doc) for doc in docs]

    async def has_payments(self, order_id: ObjectId, session=None) -> bool:
        doc = await self.collection.find_one({"order_id": order_id}, **session_kwargs(session))
        return doc is not None

    async def apply_correction(
        self,
        payment: Payment,
        changes: Dict[str, Any],
        session=None
    ) -> bool:
        """Write corrected fields. Anything outside CORRECTABLE_FIELDS and DERIVED_FIELDS is ignored."""
        allowed = CORRECTABLE_FIELDS + DERIVED_FIELDS
        updates = {k: v for k, v in changes.items() if k in allowed}
        if not updates:
            return True
        result = await self.collection.update_one(
            {"_id": payment.id}, {"$set": updates}, **session_kwargs(session)
        )
        return result.matched_count == 1

    async def delete_payment(self, payment: Payment, session=None) -> bool:
        result = await self.collection.delete_one({"_id": payment.id}, **session_kwargs(session))
        return result.deleted_count == 1
