"""
OrderRepository - order documents and their embedded history.

Every write to an existing order is guarded by the order's ``version``:
the update only matches when the stored version equals the one that was
read, and bumps it. A miss means another writer committed first.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongo import session_kwargs
from app.models.order import HistoryEntry, Order


class OrderRepository:
    """Repository for orders."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["orders"]

    async def insert_order(self, order_doc: Dict[str, Any], session=None) -> Order:
        result = await self.collection.insert_one(order_doc, **session_kwargs(session))
        order_doc["_id"] = result.inserted_id
        return Order(**order_doc)

    async def get_order(self, order_id: str, session=None) -> Optional[Order]:
        if not ObjectId.is_valid(str(order_id)):
            return None
        doc = await self.collection.find_one(
            {"_id": ObjectId(str(order_id))}, **session_kwargs(session)
        )
        if doc:
            return Order(**doc)
        return None

    async def list_orders(self, client_id: Optional[str] = None) -> List[Order]:
        """List orders, newest first, optionally for one client."""
        query: Dict[str, Any] = {}
        if client_id is not None:
            if not ObjectId.is_valid(client_id):
                return []
            query["client_id"] = ObjectId(client_id)

        cursor = self.collection.find(query).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [Order(**doc) for doc in docs]

    async def save_state(
        self,
        order: Order,
        fields: Dict[str, Any],
        history: Iterable[HistoryEntry] = (),
        session=None
    ) -> bool:
        """
        Apply ``fields`` and append ``history`` if the order is unchanged
        since it was read. Returns False on a version mismatch.
        """
        update: Dict[str, Any] = {
            "$set": {**fields, "updated_at": datetime.now(timezone.utc)},
            "$inc": {"version": 1},
        }
        entries = [entry.to_mongo() for entry in history]
        if entries:
            update["$push"] = {"history": {"$each": entries}}

        result = await self.collection.update_one(
            {"_id": order.id, "version": order.version},
            update,
            **session_kwargs(session)
        )
        return result.matched_count == 1

    async def delete_order(self, order: Order, session=None) -> bool:
        result = await self.collection.delete_one(
            {"_id": order.id, "version": order.version},
            **session_kwargs(session)
        )
        return result.deleted_count == 1
