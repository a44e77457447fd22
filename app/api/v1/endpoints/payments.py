from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_ledger_engine
from app.core.auth import get_actor
from app.db.mongo import get_db
from app.repositories.payment_repo import PaymentRepository
from app.schemas.order import OrderResponse
from app.schemas.payment import PaymentResponse, PaymentUpdate
from app.services.ledger_engine import LedgerEngine

router = APIRouter()


@router.get("", response_model=List[PaymentResponse])
async def list_payments(db = Depends(get_db)):
    """All payments, newest first."""
    payments = await PaymentRepository(db).list_payments()
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, db = Depends(get_db)):
    payment = await PaymentRepository(db).get_payment(payment_id)
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found"
        )
    return PaymentResponse.model_validate(payment)


@router.patch("/{payment_id}", response_model=OrderResponse)
async def edit_payment(
    payment_id: str,
    payload: PaymentUpdate,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Correct a payment; returns the rebuilt order."""
    order = await engine.edit_payment(
        payment_id, payload.model_dump(exclude_unset=True), actor=actor
    )
    return OrderResponse.model_validate(order)


@router.delete("/{payment_id}", response_model=OrderResponse)
async def delete_payment(
    payment_id: str,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Remove a payment; returns the rebuilt order."""
    order = await engine.delete_payment(payment_id, actor=actor)
    return OrderResponse.model_validate(order)
