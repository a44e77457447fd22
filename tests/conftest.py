import os
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient
from mongomock_motor import AsyncMongoMockClient

from app.api.deps import get_ledger_engine
from app.db.mongo import create_indexes, get_db
from app.db.transaction import TransactionRunner
from app.main import app
from app.models.order import PaymentMode
from app.repositories.client_repo import ClientRepository
from app.schemas.client import ClientCreate
from app.services.ledger_engine import LedgerEngine

# Test database configuration. Without a URI the suite runs on mongomock;
# transactions additionally need a replica set.
TEST_MONGODB_URI = os.getenv("TEST_MONGODB_URI")
TEST_MONGODB_TRANSACTIONS = os.getenv("TEST_MONGODB_TRANSACTIONS", "false").lower() == "true"
TEST_MONGODB_DB = "orderbook_test"


@pytest_asyncio.fixture
async def mongo_client():
    """Motor client against a real server, or an in-memory mock."""
    if TEST_MONGODB_URI:
        client = AsyncIOMotorClient(TEST_MONGODB_URI)
        await client.drop_database(TEST_MONGODB_DB)
        yield client
        await client.drop_database(TEST_MONGODB_DB)
        client.close()
    else:
        yield AsyncMongoMockClient()


@pytest_asyncio.fixture
async def test_db(mongo_client):
    """Fixture for a clean test database with indexes."""
    db = mongo_client[TEST_MONGODB_DB]
    await create_indexes(db)
    yield db


@pytest.fixture
def runner(mongo_client):
    return TransactionRunner(
        mongo_client,
        use_transactions=bool(TEST_MONGODB_URI) and TEST_MONGODB_TRANSACTIONS,
        max_retries=5,
        retry_delay_ms=0
    )


@pytest.fixture
def engine(test_db, runner):
    return LedgerEngine(test_db, runner=runner)


@pytest_asyncio.fixture
async def created_client(test_db):
    """Create a sample client in the test database."""
    repo = ClientRepository(test_db)
    return await repo.create_client(
        ClientCreate(name="Ana Torres", phone="+54 11 5555 0000", email="ana@example.com")
    )


@pytest_asyncio.fixture
async def open_balance_order(engine, created_client):
    return await engine.create_order(
        client_id=str(created_client.id),
        description="Custom bookshelf",
        total=Decimal("100"),
        payment_mode=PaymentMode.OPEN_BALANCE,
        actor="admin-1"
    )


@pytest_asyncio.fixture
async def installment_order(engine, created_client):
    return await engine.create_order(
        client_id=str(created_client.id),
        description="Dining table, 3 installments",
        total=Decimal("300"),
        payment_mode=PaymentMode.INSTALLMENT,
        planned_installments=3,
        first_due_date=date(2024, 1, 15),
        actor="admin-1"
    )


@pytest_asyncio.fixture
async def api_client(test_db, engine):
    """HTTP client wired to the test database."""
    app.dependency_overrides[get_db] = lambda: test_db
    app.dependency_overrides[get_ledger_engine] = lambda: engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
