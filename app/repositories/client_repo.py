from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from pymongo import ReturnDocument
from datetime import datetime, timezone
from typing import Optional

from app.models.client import Client
from app.schemas.client import ClientCreate, ClientUpdate


class ClientRepository:
    """Client database operations. Clients are deactivated, never deleted."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["clients"]

    async def create_client(self, client_data: ClientCreate) -> Client:
        now = datetime.now(timezone.utc)
        client_dict = {
            "name": client_data.name,
            "phone": client_data.phone,
            "email": client_data.email or None,
            "notes": client_data.notes,
            "auth_uid": client_data.auth_uid,
            "active": True,
            "created_at": now,
            "updated_at": now
        }

        result = await self.collection.insert_one(client_dict)
        client_dict["_id"] = result.inserted_id
        return Client(**client_dict)

    async def list_clients(self, only_active: bool = False) -> list[Client]:
        """List clients, newest first."""
        query = {"active": True} if only_active else {}
        cursor = self.collection.find(query).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [Client(**doc) for doc in docs]

    async def get_client(self, client_id: str) -> Optional[Client]:
        if not ObjectId.is_valid(client_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(client_id)})
        if doc:
            return Client(**doc)
        return None

    async def update_client(self, client_id: str, update_data: ClientUpdate) -> Optional[Client]:
        if not ObjectId.is_valid(client_id):
            return None

        updates = update_data.model_dump(exclude_unset=True)
        if not updates:
            return await self.get_client(client_id)

        updates["updated_at"] = datetime.now(timezone.utc)
        result = await self.collection.find_one_and_update(
            {"_id": ObjectId(client_id)},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if result:
            return Client(**result)
        return None

    async def deactivate_client(self, client_id: str) -> Optional[Client]:
        return await self.update_client(client_id, ClientUpdate(active=False))
