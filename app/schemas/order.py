from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.models.base import IdStr, Money
from app.models.order import HistoryKind, OrderStatus, PaymentMode


class InstallmentTerms(BaseModel):
    planned_installments: Optional[int] = None
    first_due_date: Optional[date] = None

class PreorderTerms(BaseModel):
    is_preorder: bool = False
    fulfillment_date: Optional[date] = None


class OrderCreate(BaseModel):
    """Request body to create an order. Business rules are checked by the ledger engine."""
    client_id: str
    description: str = Field(..., min_length=1)
    total: Money
    payment_mode: PaymentMode
    installment_terms: Optional[InstallmentTerms] = None
    preorder_terms: Optional[PreorderTerms] = None

class OrderDetailsUpdate(BaseModel):
    """Non-financial order edits."""
    description: Optional[str] = Field(None, min_length=1)
    preorder_terms: Optional[PreorderTerms] = None

class NoteCreate(BaseModel):
    text: str = Field(..., min_length=1)


class HistoryEntryResponse(BaseModel):
    timestamp: datetime
    kind: HistoryKind
    detail: str
    actor: str

    model_config = ConfigDict(from_attributes=True)

class OrderResponse(BaseModel):
    id: IdStr
    sequence_number: int
    code: str
    client_id: IdStr
    description: str
    total: Decimal
    payment_mode: PaymentMode

    planned_installments: Optional[int] = None
    installment_amount: Optional[Decimal] = None
    first_due_date: Optional[date] = None
    next_due_date: Optional[date] = None

    is_preorder: bool
    fulfillment_date: Optional[date] = None

    amount_paid: Decimal
    balance: Decimal
    fully_paid: bool
    status: OrderStatus
    installments_paid: Optional[int] = None
    installments_remaining: Optional[int] = None

    history: List[HistoryEntryResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduledInstallmentResponse(BaseModel):
    number: int
    amount: Decimal
    due_date: Optional[date] = None
    covered: bool

    model_config = ConfigDict(from_attributes=True)

class ScheduleResponse(BaseModel):
    order_id: str
    code: str
    installments: List[ScheduledInstallmentResponse]
