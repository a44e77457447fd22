"""
Order code sequence.

A single counter document (``counters/_id="orders"``) is incremented with
findOneAndUpdate + $inc, so no two callers can read the same value. Inside a
transaction the increment rolls back with the order insert, keeping codes
contiguous; outside one, conflicts on the counter (e.g. two first-ever
upserts racing on the unique _id) are retried here.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure

from app.core.config import settings
from app.db.mongo import session_kwargs
from app.utils.ledger_errors import TransientConflictError

logger = logging.getLogger(__name__)

ORDER_COUNTER_ID = "orders"
WRITE_CONFLICT_CODE = 112


def format_code(prefix: str, sequence_number: int) -> str:
    return f"{prefix}-{sequence_number:06d}"


def is_counter_conflict(exc: OperationFailure) -> bool:
    """Counter failures a retry can resolve: duplicate upserts and write conflicts."""
    return (
        isinstance(exc, DuplicateKeyError)
        or exc.code == WRITE_CONFLICT_CODE
        or exc.has_error_label("TransientTransactionError")
    )


class SequenceGenerator:

    RETRY_DELAY_MS = 20

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        prefix: str = None,
        max_retries: int = None
    ):
        self.db = db
        self.collection = db["counters"]
        self.prefix = prefix or settings.ORDER_CODE_PREFIX
        self.max_retries = max_retries or settings.SEQUENCE_MAX_RETRIES

    async def _increment(self, session=None) -> int:
        now = datetime.now(timezone.utc)
        result = await self.collection.find_one_and_update(
            {"_id": ORDER_COUNTER_ID},
            {
                "$inc": {"last_number": 1},
                "$set": {"updated_at": now},
                "$setOnInsert": {"created_at": now}
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
            **session_kwargs(session)
        )
        return result["last_number"]

    async def next_code(self, session=None) -> Tuple[int, str]:
        """
        Reserve the next order number.

        Returns:
            tuple: (sequence_number, formatted_code)
        """
        if session is not None and session.in_transaction:
            # The enclosing transaction is aborted by any conflict; the
            # transaction runner retries the whole operation.
            sequence = await self._increment(session)
            return sequence, format_code(self.prefix, sequence)

        for attempt in range(1, self.max_retries + 1):
            try:
                sequence = await self._increment(session)
                return sequence, format_code(self.prefix, sequence)
            except OperationFailure as exc:
                if not is_counter_conflict(exc):
                    raise
                logger.warning(f"Order counter conflict: {exc}, retry {attempt}")
                await asyncio.sleep(self.RETRY_DELAY_MS * attempt / 1000)

        raise TransientConflictError(
            f"Could not reserve an order number after {self.max_retries} attempts"
        )

    async def peek(self) -> int:
        """Last issued sequence number (0 before the first order)."""
        doc = await self.collection.find_one({"_id": ORDER_COUNTER_ID})
        return doc["last_number"] if doc else 0
