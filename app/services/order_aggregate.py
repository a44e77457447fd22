"""
Order aggregate recalculation.

Two entry points derive the same set of fields:
1. apply_confirmed_payment - incremental, trusts the order's current
   amount_paid (only valid inside the transaction inserting the payment)
2. rebuild_from_payments - full rebuild from every payment of the order;
   idempotent and independent of payment order

Both end in derive_aggregate, which is the single statement of the
ledger invariants.
"""

from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel

from app.models.order import Order, OrderStatus
from app.models.payment import Payment
from app.services import installment_planner
from app.utils.money import ZERO, to_decimal, to_decimal128, date_to_datetime


class OrderAggregate(BaseModel):
    amount_paid: Decimal
    balance: Decimal
    fully_paid: bool
    status: OrderStatus
    installments_paid: Optional[int] = None
    installments_remaining: Optional[int] = None
    next_due_date: Optional[date] = None

    def to_mongo(self) -> Dict[str, Any]:
        """Fields for a ``$set`` on the order document."""
        return {
            "amount_paid": to_decimal128(self.amount_paid),
            "balance": to_decimal128(self.balance),
            "fully_paid": self.fully_paid,
            "status": self.status.value,
            "installments_paid": self.installments_paid,
            "installments_remaining": self.installments_remaining,
            "next_due_date": date_to_datetime(self.next_due_date),
        }


def derive_status(amount_paid: Decimal, fully_paid: bool) -> OrderStatus:
    if fully_paid:
        return OrderStatus.PAID
    if amount_paid > ZERO:
        return OrderStatus.PARTIALLY_PAID
    return OrderStatus.PENDING


def count_installments_paid(
    amount_paid: Decimal,
    installment_amount: Decimal,
    planned_count: int
) -> int:
    if installment_amount <= ZERO:
        return 0
    covered = (amount_paid / installment_amount).to_integral_value(rounding=ROUND_FLOOR)
    return max(0, min(int(covered), planned_count))


def derive_aggregate(order: Order, amount_paid: Decimal) -> OrderAggregate:
    """Compute every derived field of ``order`` for a given confirmed total."""
    total = to_decimal(order.total)
    balance = max(total - amount_paid, ZERO)
    fully_paid = balance == ZERO and total > ZERO

    installments_paid = order.installments_paid
    installments_remaining = order.installments_remaining
    next_due = order.next_due_date

    if order.is_installment and order.planned_installments and order.installment_amount:
        planned = order.planned_installments
        installments_paid = count_installments_paid(
            amount_paid, to_decimal(order.installment_amount), planned
        )
        installments_remaining = planned - installments_paid
        next_due = installment_planner.next_due_date(
            order.first_due_date, installments_paid, planned, fully_paid
        )

    return OrderAggregate(
        amount_paid=amount_paid,
        balance=balance,
        fully_paid=fully_paid,
        status=derive_status(amount_paid, fully_paid),
        installments_paid=installments_paid,
        installments_remaining=installments_remaining,
        next_due_date=next_due,
    )


def apply_confirmed_payment(order: Order, amount: Decimal) -> OrderAggregate:
    return derive_aggregate(order, to_decimal(order.amount_paid) + to_decimal(amount))


def confirmed_total(payments: Iterable[Payment]) -> Decimal:
    return sum((to_decimal(p.amount) for p in payments if p.confirmed), ZERO)


def rebuild_from_payments(order: Order, payments: Iterable[Payment]) -> OrderAggregate:
    return derive_aggregate(order, confirmed_total(payments))
