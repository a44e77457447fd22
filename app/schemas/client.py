from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.base import IdStr


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    phone: str = ""
    email: Optional[EmailStr] = None
    notes: str = ""

class ClientCreate(ClientBase):
    auth_uid: Optional[str] = None

class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    notes: Optional[str] = None
    auth_uid: Optional[str] = None
    active: Optional[bool] = None

class ClientResponse(ClientBase):
    id: IdStr
    auth_uid: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientSummaryResponse(BaseModel):
    """Order roll-up for one client."""
    client_id: str
    order_count: int
    paid_count: int
    outstanding_count: int
    total_billed: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
