from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_ledger_engine, get_summary_service
from app.core.auth import get_actor
from app.db.mongo import get_db
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import PaymentRepository
from app.schemas.order import (
    NoteCreate,
    OrderCreate,
    OrderDetailsUpdate,
    OrderResponse,
    ScheduleResponse,
)
from app.schemas.payment import PaymentCreate, PaymentResponse
from app.services.ledger_engine import LedgerEngine
from app.services.summary_service import SummaryService

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Create a pending order with the next sequential code."""
    installment = payload.installment_terms
    preorder = payload.preorder_terms
    order = await engine.create_order(
        client_id=payload.client_id,
        description=payload.description,
        total=payload.total,
        payment_mode=payload.payment_mode,
        planned_installments=installment.planned_installments if installment else None,
        first_due_date=installment.first_due_date if installment else None,
        is_preorder=preorder.is_preorder if preorder else False,
        fulfillment_date=preorder.fulfillment_date if preorder else None,
        actor=actor
    )
    return OrderResponse.model_validate(order)


@router.get("", response_model=List[OrderResponse])
async def list_orders(client_id: Optional[str] = None, db = Depends(get_db)):
    """List orders newest first, optionally for one client."""
    orders = await OrderRepository(db).list_orders(client_id=client_id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db = Depends(get_db)):
    order = await OrderRepository(db).get_order(order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order_details(
    order_id: str,
    payload: OrderDetailsUpdate,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Edit description or preorder terms. Financial fields are read-only."""
    preorder = payload.preorder_terms
    order = await engine.update_order_details(
        order_id,
        description=payload.description,
        is_preorder=preorder.is_preorder if preorder else None,
        fulfillment_date=preorder.fulfillment_date if preorder else None,
        actor=actor
    )
    return OrderResponse.model_validate(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Delete an order that has no payments."""
    await engine.delete_order(order_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{order_id}/notes", response_model=OrderResponse)
async def add_order_note(
    order_id: str,
    payload: NoteCreate,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    order = await engine.add_note(order_id, payload.text, actor=actor)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/rebuild", response_model=OrderResponse)
async def rebuild_order(
    order_id: str,
    actor: str = Depends(get_actor),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Recompute derived fields from the payment history."""
    order = await engine.rebuild_order(order_id, actor=actor)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/schedule", response_model=ScheduleResponse)
async def get_installment_schedule(
    order_id: str,
    summaries: SummaryService = Depends(get_summary_service)
):
    return await summaries.installment_schedule(order_id)


@router.get("/{order_id}/payments", response_model=List[PaymentResponse])
async def list_order_payments(order_id: str, db = Depends(get_db)):
    order = await OrderRepository(db).get_order(order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    payments = await PaymentRepository(db).list_payments(order_id=order_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post("/{order_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def register_payment(
    order_id: str,
    payload: PaymentCreate,
    actor: str = Depends(get_actor),
    db = Depends(get_db),
    engine: LedgerEngine = Depends(get_ledger_engine)
):
    """Record a payment against an order."""
    payment_id = await engine.register_payment(
        order_id,
        amount=payload.amount,
        medium=payload.medium,
        confirmed=payload.confirmed,
        note=payload.note,
        actor=actor
    )
    payment = await PaymentRepository(db).get_payment(payment_id)
    return PaymentResponse.model_validate(payment)
