"""
Installment planning - pure calendar and amount arithmetic.

Installment k (0-indexed) falls due k calendar months after the first due
date. relativedelta keeps the day of month when the target month has it and
clamps to the month's last day otherwise (Jan 31 -> Feb 29 -> Mar 31).
Offsets are always taken from the first due date, never chained.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from app.utils.money import to_decimal


class ScheduledInstallment(BaseModel):
    number: int
    amount: Decimal
    due_date: Optional[date] = None
    covered: bool = False


def installment_amount(total: Decimal, planned_count: int) -> Decimal:
    """Per-installment amount, unrounded. Rounding is a display concern."""
    if planned_count <= 0:
        raise ValueError("planned_count must be positive")
    return to_decimal(total) / Decimal(planned_count)


def due_date(first_due_date: date, installments_paid: int) -> date:
    return first_due_date + relativedelta(months=installments_paid)


def next_due_date(
    first_due_date: Optional[date],
    installments_paid: int,
    planned_count: int,
    fully_paid: bool = False
) -> Optional[date]:
    """Due date of the next unpaid installment, or None when nothing is due."""
    if first_due_date is None:
        return None
    if fully_paid or installments_paid >= planned_count:
        return None
    return due_date(first_due_date, installments_paid)


def build_schedule(
    total: Decimal,
    planned_count: int,
    first_due_date: Optional[date],
    installments_paid: int = 0
) -> List[ScheduledInstallment]:
    amount = installment_amount(total, planned_count)
    return [
        ScheduledInstallment(
            number=k + 1,
            amount=amount,
            due_date=due_date(first_due_date, k) if first_due_date else None,
            covered=k < installments_paid
        )
        for k in range(planned_count)
    ]
