from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.order import Order, OrderStatus
from app.repositories.order_repo import OrderRepository
from app.schemas.client import ClientSummaryResponse
from app.schemas.order import ScheduledInstallmentResponse, ScheduleResponse
from app.services import installment_planner
from app.utils.ledger_errors import LedgerValidationError, NotFoundError
from app.utils.money import ZERO, to_decimal


class SummaryService:
    """Read-only roll-ups over orders."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.orders = OrderRepository(db)

    async def client_summary(self, client_id: str) -> ClientSummaryResponse:
        orders = await self.orders.list_orders(client_id=client_id)
        return summarize_orders(client_id, orders)

    async def installment_schedule(self, order_id: str) -> ScheduleResponse:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if not order.is_installment or not order.planned_installments:
            raise LedgerValidationError(f"Order {order.code} is not an installment order")
        installments = installment_planner.build_schedule(
            to_decimal(order.total),
            order.planned_installments,
            order.first_due_date,
            order.installments_paid or 0
        )
        return ScheduleResponse(
            order_id=str(order.id),
            code=order.code,
            installments=[ScheduledInstallmentResponse.model_validate(i) for i in installments]
        )


def summarize_orders(client_id: str, orders: List[Order]) -> ClientSummaryResponse:
    total_billed = sum((to_decimal(o.total) for o in orders), ZERO)
    total_paid = sum((to_decimal(o.amount_paid) for o in orders), ZERO)
    total_outstanding = sum((to_decimal(o.balance) for o in orders), ZERO)
    return ClientSummaryResponse(
        client_id=client_id,
        order_count=len(orders),
        paid_count=sum(1 for o in orders if o.status == OrderStatus.PAID),
        outstanding_count=sum(1 for o in orders if to_decimal(o.balance) > ZERO),
        total_billed=total_billed,
        total_paid=total_paid,
        total_outstanding=total_outstanding,
    )
