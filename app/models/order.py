"""
Order model - a billable sale owned by a client.

Derived ledger fields (amount_paid, balance, fully_paid, status,
installment counters, next_due_date) are owned by the ledger engine:
- amount_paid = sum of confirmed payment amounts
- balance = max(total - amount_paid, 0)
- fully_paid iff balance == 0 and total > 0
- status: pending -> partially_paid -> paid
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.base import MongoModel, PyObjectId, Money, CalendarDate


class PaymentMode(str, Enum):
    SINGLE = "single"
    INSTALLMENT = "installment"
    OPEN_BALANCE = "open_balance"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class HistoryKind(str, Enum):
    STATUS_CHANGE = "status_change"
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_EDITED = "payment_edited"
    PAYMENT_DELETED = "payment_deleted"
    NOTE = "note"


# Embedded in the order document, no _id of its own
class HistoryEntry(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    kind: HistoryKind
    detail: str
    actor: str

    def to_mongo(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "detail": self.detail,
            "actor": self.actor,
        }


class Order(MongoModel):
    sequence_number: int
    code: str

    client_id: PyObjectId
    description: str
    total: Money
    payment_mode: PaymentMode

    # Installment terms (payment_mode == installment only)
    planned_installments: Optional[int] = None
    installment_amount: Optional[Money] = None
    first_due_date: Optional[CalendarDate] = None
    next_due_date: Optional[CalendarDate] = None

    # Preorder terms
    is_preorder: bool = False
    fulfillment_date: Optional[CalendarDate] = None

    # Derived ledger state
    amount_paid: Money = Decimal("0")
    balance: Money = Decimal("0")
    fully_paid: bool = False
    status: OrderStatus = OrderStatus.PENDING
    installments_paid: Optional[int] = None
    installments_remaining: Optional[int] = None

    history: List[HistoryEntry] = []

    # Optimistic concurrency token, bumped on every order write
    version: int = 1

    @property
    def is_installment(self) -> bool:
        return self.payment_mode == PaymentMode.INSTALLMENT
