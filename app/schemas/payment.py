from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict

from app.models.base import IdStr, Money
from app.models.order import PaymentMode


class PaymentCreate(BaseModel):
    """Request body to register a payment against an order."""
    amount: Money
    medium: Optional[str] = None
    confirmed: bool = True
    note: str = ""

class PaymentUpdate(BaseModel):
    """Corrections allowed on a recorded payment."""
    amount: Optional[Money] = None
    medium: Optional[str] = None
    confirmed: Optional[bool] = None
    note: Optional[str] = None

class PaymentResponse(BaseModel):
    id: IdStr
    order_id: IdStr
    client_id: IdStr
    payment_mode: PaymentMode
    planned_installments: Optional[int] = None
    installment_amount: Optional[Decimal] = None
    amount: Decimal
    confirmed: bool
    installment_number: Optional[int] = None
    medium: Optional[str] = None
    note: str
    created_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
