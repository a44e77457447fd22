"""
Transactional scope for ledger operations.

Every ledger operation is a read-compute-write callback. The runner gives
it a session (inside a multi-document transaction when enabled) and re-runs
it from scratch when:
1. MongoDB aborts the transaction with a TransientTransactionError label
2. the callback raises WriteConflict (an order version changed under it)

Retries are bounded; running out raises TransientConflictError. Any other
driver error surfaces as StorageFailureError. Ledger errors raised by the
callback abort the transaction and propagate untouched.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.utils.ledger_errors import StorageFailureError, TransientConflictError

logger = logging.getLogger(__name__)


class WriteConflict(Exception):
    """A guarded write found the document changed since it was read."""
    pass


class TransactionRunner:

    def __init__(
        self,
        client: Optional[AsyncIOMotorClient],
        use_transactions: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_delay_ms: Optional[int] = None
    ):
        self.client = client
        self.use_transactions = (
            settings.MONGODB_TRANSACTIONS if use_transactions is None else use_transactions
        )
        self.max_retries = max_retries or settings.TRANSACTION_MAX_RETRIES
        self.retry_delay_ms = (
            settings.TRANSACTION_RETRY_DELAY_MS if retry_delay_ms is None else retry_delay_ms
        )

    async def run(self, name: str, callback: Callable[[Any], Awaitable[Any]]) -> Any:
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._run_once(callback)
            except WriteConflict as exc:
                logger.warning(f"[TRANSACTION] {name}: write conflict ({exc}), attempt {attempt}")
            except PyMongoError as exc:
                if not exc.has_error_label("TransientTransactionError"):
                    logger.error(f"[TRANSACTION] {name}: storage failure: {exc}")
                    raise StorageFailureError(f"{name} failed: {exc}") from exc
                logger.warning(f"[TRANSACTION] {name}: transient error ({exc}), attempt {attempt}")

            if attempt < self.max_retries and self.retry_delay_ms:
                await asyncio.sleep(self.retry_delay_ms * attempt / 1000)

        raise TransientConflictError(
            f"{name} did not commit after {self.max_retries} attempts"
        )

    async def _run_once(self, callback: Callable[[Any], Awaitable[Any]]) -> Any:
        if not self.use_transactions:
            return await callback(None)

        async with await self.client.start_session() as session:
            async with session.start_transaction():
                # Commits on clean exit, aborts on any exception
                return await callback(session)
