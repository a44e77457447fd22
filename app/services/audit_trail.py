"""
Audit trail for orders (append only).

Entries live in the order document's ``history`` array. They are pushed in
the same guarded update as the state change they describe, so an entry
exists exactly when its change committed. Nothing here edits or removes
an entry.
"""

import logging
from decimal import Decimal

from app.db.transaction import WriteConflict
from app.models.order import HistoryEntry, HistoryKind, Order
from app.repositories.order_repo import OrderRepository
from app.utils.money import format_amount

logger = logging.getLogger(__name__)


def order_created(actor: str) -> HistoryEntry:
    return HistoryEntry(
        kind=HistoryKind.STATUS_CHANGE,
        detail="Order created, pending",
        actor=actor
    )


def payment_recorded(amount: Decimal, actor: str) -> HistoryEntry:
    return HistoryEntry(
        kind=HistoryKind.PAYMENT_RECORDED,
        detail=f"Payment recorded for ${format_amount(amount)}",
        actor=actor
    )


def payment_edited(old_amount: Decimal, new_amount: Decimal, actor: str) -> HistoryEntry:
    return HistoryEntry(
        kind=HistoryKind.PAYMENT_EDITED,
        detail=f"Payment edited: from ${format_amount(old_amount)} to ${format_amount(new_amount)}",
        actor=actor
    )


def payment_deleted(amount: Decimal, actor: str) -> HistoryEntry:
    return HistoryEntry(
        kind=HistoryKind.PAYMENT_DELETED,
        detail=f"Payment deleted for ${format_amount(amount)}",
        actor=actor
    )


def note(text: str, actor: str) -> HistoryEntry:
    return HistoryEntry(kind=HistoryKind.NOTE, detail=text, actor=actor)


class AuditTrail:
    """Appends entries that carry no state change of their own (notes)."""

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    async def append(self, order: Order, entry: HistoryEntry, session=None) -> None:
        saved = await self.order_repo.save_state(order, {}, [entry], session=session)
        if not saved:
            raise WriteConflict(f"order {order.id} changed before history append")
        logger.info(f"History {entry.kind.value} appended to order {order.code} by {entry.actor}")
