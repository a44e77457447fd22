"""
Ledger engine - the public order/payment operations.

Each operation is one read-compute-write cycle run by TransactionRunner:
1. read the order (and, for corrections, the full payment list)
2. validate business rules (nothing is written if this fails)
3. compute the new aggregate
4. write the order with a version guard, history entry included
5. write the dependent payment change

The order write comes before the payment write so that, without
multi-document transactions, a lost race is detected before any payment
is touched. A WriteConflict from step 4 re-runs the whole cycle.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import settings
from app.db.transaction import TransactionRunner, WriteConflict
from app.models.order import HistoryEntry, HistoryKind, Order, PaymentMode
from app.models.payment import Payment
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import (
    CORRECTABLE_FIELDS,
    NULLABLE_FIELDS,
    PaymentRepository,
)
from app.services import audit_trail, installment_planner
from app.services.audit_trail import AuditTrail
from app.services.order_aggregate import (
    OrderAggregate,
    apply_confirmed_payment,
    rebuild_from_payments,
)
from app.services.sequence_generator import SequenceGenerator
from app.utils.ledger_errors import NotFoundError, PreconditionFailedError
from app.utils.money import ZERO, date_to_datetime, to_decimal, to_decimal128
from app.utils.order_validation import (
    validate_against_balance,
    validate_object_id,
    validate_order_terms,
    validate_payment_amount,
    validate_preorder,
)

logger = logging.getLogger(__name__)


class LedgerEngine:
    """Orchestrates orders, payments, aggregates and the audit trail."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: Optional[AsyncIOMotorClient] = None,
        runner: Optional[TransactionRunner] = None,
        sequence: Optional[SequenceGenerator] = None
    ):
        self.db = db
        self.orders = OrderRepository(db)
        self.payments = PaymentRepository(db)
        self.audit = AuditTrail(self.orders)
        self.sequence = sequence or SequenceGenerator(db)
        self.runner = runner or TransactionRunner(client)

    # ===== ORDERS =====

    async def create_order(
        self,
        client_id: str,
        description: str,
        total: Decimal,
        payment_mode: PaymentMode,
        planned_installments: Optional[int] = None,
        first_due_date: Optional[date] = None,
        is_preorder: bool = False,
        fulfillment_date: Optional[date] = None,
        actor: Optional[str] = None
    ) -> Order:
        """Create a pending order with the next sequential code."""
        actor = actor or settings.DEFAULT_ACTOR
        total = to_decimal(total)
        payment_mode = PaymentMode(payment_mode)
        client_oid = validate_object_id(client_id, "client id")
        validate_order_terms(
            total, payment_mode, planned_installments, is_preorder, fulfillment_date
        )

        installment = payment_mode == PaymentMode.INSTALLMENT
        installment_amount = (
            installment_planner.installment_amount(total, planned_installments)
            if installment else None
        )

        async def _create(session) -> Order:
            sequence_number, code = await self.sequence.next_code(session)
            now = datetime.now(timezone.utc)
            order_doc = {
                "sequence_number": sequence_number,
                "code": code,
                "client_id": client_oid,
                "description": description,
                "total": to_decimal128(total),
                "payment_mode": payment_mode.value,
                "planned_installments": planned_installments if installment else None,
                "installment_amount": to_decimal128(installment_amount),
                "first_due_date": date_to_datetime(first_due_date) if installment else None,
                "next_due_date": date_to_datetime(first_due_date) if installment else None,
                "is_preorder": bool(is_preorder),
                "fulfillment_date": date_to_datetime(fulfillment_date) if is_preorder else None,
                "amount_paid": to_decimal128(ZERO),
                "balance": to_decimal128(total),
                "fully_paid": False,
                "status": "pending",
                "installments_paid": 0 if installment else None,
                "installments_remaining": planned_installments if installment else None,
                "history": [audit_trail.order_created(actor).to_mongo()],
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            return await self.orders.insert_order(order_doc, session=session)

        order = await self.runner.run("create_order", _create)
        logger.info(f"[LEDGER] Order created: {order.code} ({order.id}) total={total} by {actor}")
        return order

    async def update_order_details(
        self,
        order_id: str,
        description: Optional[str] = None,
        is_preorder: Optional[bool] = None,
        fulfillment_date: Optional[date] = None,
        actor: Optional[str] = None
    ) -> Order:
        """Edit non-financial terms. Totals and derived fields are never touched."""
        actor = actor or settings.DEFAULT_ACTOR

        async def _update(session) -> Order:
            order = await self._require_order(order_id, session)
            fields: Dict[str, Any] = {}
            changed: List[str] = []

            if description is not None and description != order.description:
                fields["description"] = description
                changed.append("description")

            if is_preorder is not None:
                target_date = fulfillment_date if is_preorder else None
                validate_preorder(is_preorder, target_date)
                if is_preorder != order.is_preorder or target_date != order.fulfillment_date:
                    fields["is_preorder"] = is_preorder
                    fields["fulfillment_date"] = date_to_datetime(target_date)
                    changed.append("preorder terms")

            if not fields:
                return order

            entry = audit_trail.note(f"Order details updated: {', '.join(changed)}", actor)
            await self._save(order, fields, [entry], session)
            return await self._require_order(order_id, session)

        return await self.runner.run("update_order_details", _update)

    async def add_note(self, order_id: str, text: str, actor: Optional[str] = None) -> Order:
        actor = actor or settings.DEFAULT_ACTOR

        async def _note(session) -> Order:
            order = await self._require_order(order_id, session)
            await self.audit.append(order, audit_trail.note(text, actor), session=session)
            return await self._require_order(order_id, session)

        return await self.runner.run("add_note", _note)

    async def delete_order(self, order_id: str, actor: Optional[str] = None) -> None:
        """
        Delete an order that never received money.

        Both conditions are checked against a fresh read inside the
        transaction: amount_paid must be zero and no payment record may
        reference the order, confirmed or not.
        """
        actor = actor or settings.DEFAULT_ACTOR

        async def _delete(session) -> Order:
            order = await self._require_order(order_id, session)
            if to_decimal(order.amount_paid) != ZERO:
                raise PreconditionFailedError(
                    f"Order {order.code} has payments applied and cannot be deleted"
                )
            if await self.payments.has_payments(order.id, session=session):
                raise PreconditionFailedError(
                    f"Order {order.code} has payment records and cannot be deleted"
                )
            if not await self.orders.delete_order(order, session=session):
                raise WriteConflict(f"order {order.id} changed before delete")
            return order

        order = await self.runner.run("delete_order", _delete)
        logger.info(f"[LEDGER] Order deleted: {order.code} ({order.id}) by {actor}")

    async def rebuild_order(self, order_id: str, actor: Optional[str] = None) -> Order:
        """
        Recompute the order from its payment history and store the result.

        Writes (with a status_change entry) only when stored fields drift
        from the rebuilt ones, so repeated calls are no-ops.
        """
        actor = actor or settings.DEFAULT_ACTOR

        async def _rebuild(session) -> Order:
            order = await self._require_order(order_id, session)
            payments = await self.payments.list_payments(order_id=str(order.id), session=session)
            aggregate = rebuild_from_payments(order, payments)
            if _aggregate_matches(order, aggregate):
                return order

            entry = HistoryEntry(
                kind=HistoryKind.STATUS_CHANGE,
                detail=f"Order recalculated from payment history: {aggregate.status.value}",
                actor=actor
            )
            await self._save(order, aggregate.to_mongo(), [entry], session)
            return await self._require_order(order_id, session)

        return await self.runner.run("rebuild_order", _rebuild)

    # ===== PAYMENTS =====

    async def register_payment(
        self,
        order_id: str,
        amount: Decimal,
        medium: Optional[str] = None,
        confirmed: bool = True,
        note: str = "",
        actor: Optional[str] = None
    ) -> str:
        """
        Record a payment and apply it to the order.

        Unconfirmed payments are stored but leave the order's financial
        state alone. Returns the new payment id.
        """
        actor = actor or settings.DEFAULT_ACTOR
        amount = to_decimal(amount)
        validate_payment_amount(amount)

        async def _register(session) -> Payment:
            order = await self._require_order(order_id, session)
            if confirmed:
                validate_against_balance(order, amount)

            now = datetime.now(timezone.utc)
            payment_doc = {
                "_id": ObjectId(),
                "order_id": order.id,
                "client_id": order.client_id,
                "payment_mode": order.payment_mode.value,
                "planned_installments": order.planned_installments,
                "installment_amount": to_decimal128(order.installment_amount),
                "amount": to_decimal128(amount),
                "confirmed": confirmed,
                "installment_number": _next_installment_number(order) if confirmed else None,
                "medium": medium,
                "note": note or "",
                "created_by": actor,
                "created_at": now,
                "updated_at": now,
            }

            if confirmed:
                aggregate = apply_confirmed_payment(order, amount)
                fields = aggregate.to_mongo()
                entries = [audit_trail.payment_recorded(amount, actor)]
            else:
                fields, entries = {}, []

            # Both documents are fully built before the first write
            await self._save(order, fields, entries, session)

            return await self.payments.insert_payment(payment_doc, session=session)

        payment = await self.runner.run("register_payment", _register)
        logger.info(
            f"[LEDGER] Payment {payment.id} registered on order {order_id}: "
            f"amount={amount} confirmed={confirmed} by {actor}"
        )
        return str(payment.id)

    async def edit_payment(
        self,
        payment_id: str,
        changes: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Order:
        """
        Correct amount/medium/confirmed/note of a payment and rebuild its order.

        Overpayment is not re-validated here, unlike register_payment.
        ``medium`` may be cleared with an explicit None; other None values
        are ignored. An edit that changes nothing writes nothing.
        """
        actor = actor or settings.DEFAULT_ACTOR
        changes = {
            k: v for k, v in changes.items()
            if k in CORRECTABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        }
        if "amount" in changes:
            changes["amount"] = to_decimal(changes["amount"])
            validate_payment_amount(changes["amount"])

        async def _edit(session) -> Order:
            payment = await self._require_payment(payment_id, session)
            order = await self._require_order(str(payment.order_id), session)

            effective = {k: v for k, v in changes.items() if getattr(payment, k) != v}
            if not effective:
                return order

            if "confirmed" in effective:
                effective["installment_number"] = (
                    _next_installment_number(order) if effective["confirmed"] else None
                )

            corrected = payment.model_copy(update=effective)
            history = await self.payments.list_payments(order_id=str(order.id), session=session)
            history = [corrected if p.id == payment.id else p for p in history]
            aggregate = rebuild_from_payments(order, history)

            stored = dict(effective)
            if "amount" in stored:
                stored["amount"] = to_decimal128(stored["amount"])

            entry = audit_trail.payment_edited(payment.amount, corrected.amount, actor)
            await self._save(order, aggregate.to_mongo(), [entry], session)

            if not await self.payments.apply_correction(payment, stored, session=session):
                raise WriteConflict(f"payment {payment.id} vanished during edit")
            return await self._require_order(str(order.id), session)

        order = await self.runner.run("edit_payment", _edit)
        logger.info(f"[LEDGER] Payment {payment_id} edited on order {order.code}: {sorted(changes)} by {actor}")
        return order

    async def delete_payment(self, payment_id: str, actor: Optional[str] = None) -> Order:
        """Physically remove a payment and rebuild its order. Irreversible."""
        actor = actor or settings.DEFAULT_ACTOR

        async def _delete(session) -> Order:
            payment = await self._require_payment(payment_id, session)
            order = await self._require_order(str(payment.order_id), session)

            history = await self.payments.list_payments(order_id=str(order.id), session=session)
            remaining = [p for p in history if p.id != payment.id]
            aggregate = rebuild_from_payments(order, remaining)

            entry = audit_trail.payment_deleted(payment.amount, actor)
            await self._save(order, aggregate.to_mongo(), [entry], session)

            if not await self.payments.delete_payment(payment, session=session):
                raise WriteConflict(f"payment {payment.id} vanished during delete")
            return await self._require_order(str(order.id), session)

        order = await self.runner.run("delete_payment", _delete)
        logger.info(f"[LEDGER] Payment {payment_id} deleted from order {order.code} by {actor}")
        return order

    # ===== PRIVATE HELPERS =====

    async def _require_order(self, order_id: str, session) -> Order:
        order = await self.orders.get_order(order_id, session=session)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def _require_payment(self, payment_id: str, session) -> Payment:
        payment = await self.payments.get_payment(payment_id, session=session)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    async def _save(
        self,
        order: Order,
        fields: Dict[str, Any],
        history: List[HistoryEntry],
        session
    ) -> None:
        if not await self.orders.save_state(order, fields, history, session=session):
            raise WriteConflict(f"order {order.id} changed since version {order.version}")


def _next_installment_number(order: Order) -> Optional[int]:
    """Index a newly confirmed payment takes on an installment order."""
    if not order.is_installment or not order.planned_installments:
        return None
    return min((order.installments_paid or 0) + 1, order.planned_installments)


def _aggregate_matches(order: Order, aggregate: OrderAggregate) -> bool:
    return (
        to_decimal(order.amount_paid) == aggregate.amount_paid
        and to_decimal(order.balance) == aggregate.balance
        and order.fully_paid == aggregate.fully_paid
        and order.status == aggregate.status
        and order.installments_paid == aggregate.installments_paid
        and order.installments_remaining == aggregate.installments_remaining
        and order.next_due_date == aggregate.next_due_date
    )
