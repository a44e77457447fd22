"""Order and payment business-rule validation.

All checks raise LedgerValidationError and run before any write.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from bson import ObjectId

from app.models.order import Order, PaymentMode
from app.utils.ledger_errors import LedgerValidationError
from app.utils.money import ZERO, format_amount, is_storable, to_decimal


def validate_object_id(value: str, label: str) -> ObjectId:
    if not ObjectId.is_valid(str(value)):
        raise LedgerValidationError(f"Invalid {label}: {value!r}")
    return ObjectId(str(value))


def validate_order_terms(
    total: Decimal,
    payment_mode: PaymentMode,
    planned_installments: Optional[int] = None,
    is_preorder: bool = False,
    fulfillment_date: Optional[date] = None
) -> None:
    """
    Validate order terms.

    Rules:
    - total must be positive and storable as Decimal128
    - installment orders need a positive planned installment count
    - preorders need a fulfillment date
    """
    validate_amount(total, "Order total")

    if payment_mode == PaymentMode.INSTALLMENT:
        if planned_installments is None or planned_installments <= 0:
            raise LedgerValidationError(
                "Installment orders need a positive number of planned installments"
            )

    validate_preorder(is_preorder, fulfillment_date)


def validate_preorder(is_preorder: bool, fulfillment_date: Optional[date]) -> None:
    if is_preorder and fulfillment_date is None:
        raise LedgerValidationError("Preorders need a fulfillment date")


def validate_amount(amount: Decimal, label: str) -> None:
    """Amounts must be positive and storable as Decimal128 without rounding."""
    amount = to_decimal(amount)
    if not amount.is_finite():
        raise LedgerValidationError(f"{label} must be a finite number: {amount}")
    if amount <= ZERO:
        raise LedgerValidationError(f"{label} must be positive: {amount}")
    if not is_storable(amount):
        raise LedgerValidationError(
            f"{label} cannot be stored exactly (max 34 significant digits): {amount}"
        )


def validate_payment_amount(amount: Decimal) -> None:
    validate_amount(amount, "Payment amount")


def validate_against_balance(order: Order, amount: Decimal) -> None:
    """Open-balance orders never accept a confirmed payment above the balance."""
    if order.payment_mode != PaymentMode.OPEN_BALANCE:
        return
    balance = to_decimal(order.balance)
    if to_decimal(amount) > balance:
        raise LedgerValidationError(
            f"Payment amount ({format_amount(amount)}) cannot exceed the "
            f"outstanding balance ({format_amount(balance)})"
        )
