import asyncio
from unittest.mock import AsyncMock

import pytest
from pymongo.errors import DuplicateKeyError, OperationFailure

from app.services.sequence_generator import SequenceGenerator, format_code
from app.utils.ledger_errors import TransientConflictError


def test_format_code_pads_to_six_digits():
    assert format_code("OTK", 1) == "OTK-000001"
    assert format_code("OTK", 123456) == "OTK-123456"
    assert format_code("INV", 1234567) == "INV-1234567"


@pytest.mark.asyncio
async def test_first_code_starts_at_one(test_db):
    generator = SequenceGenerator(test_db, prefix="OTK")

    assert await generator.peek() == 0
    assert await generator.next_code() == (1, "OTK-000001")
    assert await generator.next_code() == (2, "OTK-000002")
    assert await generator.peek() == 2


@pytest.mark.asyncio
async def test_concurrent_reservations_are_unique(test_db):
    generator = SequenceGenerator(test_db, prefix="OTK")

    results = await asyncio.gather(*(generator.next_code() for _ in range(25)))

    assert sorted(n for n, _ in results) == list(range(1, 26))
    assert len({code for _, code in results}) == 25


@pytest.mark.asyncio
async def test_counter_conflict_is_retried(test_db, monkeypatch):
    generator = SequenceGenerator(test_db, prefix="OTK", max_retries=3)
    monkeypatch.setattr(generator, "RETRY_DELAY_MS", 0)
    generator._increment = AsyncMock(side_effect=[DuplicateKeyError("dup"), 7])

    assert await generator.next_code() == (7, "OTK-000007")
    assert generator._increment.await_count == 2


@pytest.mark.asyncio
async def test_counter_conflict_exhausts_retries(test_db, monkeypatch):
    generator = SequenceGenerator(test_db, prefix="OTK", max_retries=2)
    monkeypatch.setattr(generator, "RETRY_DELAY_MS", 0)
    generator._increment = AsyncMock(side_effect=DuplicateKeyError("dup"))

    with pytest.raises(TransientConflictError):
        await generator.next_code()
    assert generator._increment.await_count == 2


@pytest.mark.asyncio
async def test_write_conflict_on_counter_is_retried(test_db, monkeypatch):
    generator = SequenceGenerator(test_db, prefix="OTK", max_retries=3)
    monkeypatch.setattr(generator, "RETRY_DELAY_MS", 0)
    generator._increment = AsyncMock(side_effect=[OperationFailure("WriteConflict", code=112), 4])

    assert await generator.next_code() == (4, "OTK-000004")


@pytest.mark.asyncio
async def test_permanent_failure_is_not_retried(test_db, monkeypatch):
    generator = SequenceGenerator(test_db, prefix="OTK", max_retries=5)
    monkeypatch.setattr(generator, "RETRY_DELAY_MS", 0)
    generator._increment = AsyncMock(side_effect=OperationFailure("not authorized", code=13))

    with pytest.raises(OperationFailure):
        await generator.next_code()
    assert generator._increment.await_count == 1
