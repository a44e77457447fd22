from typing import Optional
from pydantic import EmailStr
from app.models.base import MongoModel


class Client(MongoModel):
    """A customer placing orders. Referenced by id; never touched by the ledger engine."""
    name: str
    phone: str = ""
    email: Optional[EmailStr] = None
    notes: str = ""
    auth_uid: Optional[str] = None
    active: bool = True
