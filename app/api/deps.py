from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongo import get_client, get_db
from app.services.ledger_engine import LedgerEngine
from app.services.summary_service import SummaryService


def get_ledger_engine(db: AsyncIOMotorDatabase = Depends(get_db)) -> LedgerEngine:
    return LedgerEngine(db, client=get_client())


def get_summary_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> SummaryService:
    return SummaryService(db)
