from typing import Optional

from app.models.base import MongoModel, PyObjectId, Money
from app.models.order import PaymentMode


class Payment(MongoModel):
    """
    Money received (or announced) against one order.

    client_id, payment_mode, planned_installments and installment_amount are
    snapshots of the order at insert time; the order stays authoritative.
    Only amount, medium, confirmed and note may change afterwards.
    """
    order_id: PyObjectId
    client_id: PyObjectId
    payment_mode: PaymentMode
    planned_installments: Optional[int] = None
    installment_amount: Optional[Money] = None

    amount: Money
    confirmed: bool = True
    installment_number: Optional[int] = None
    medium: Optional[str] = None
    note: str = ""

    created_by: str
