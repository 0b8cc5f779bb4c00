"""
Pytest configuration for the expense tracker.

Provides fixtures for:
- A fresh SQLite database file per test
- A repository on top of it
- A fixed clock so "current month" is deterministic
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import AsyncIterator

import pytest
import pytest_asyncio

from db import Database
from repository import ExpenseRepository
from utils.date_utils import to_millis

# Wednesday, 15 March 2024 at noon local time
FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)
DELIVERY_TIMEOUT = 2.0


def fixed_clock() -> datetime:
    return FIXED_NOW


def millis(*args: int) -> int:
    """Epoch milliseconds of a local datetime, e.g. millis(2024, 3, 1)."""
    return to_millis(datetime(*args))


async def next_delivery(stream: AsyncIterator):
    """Await the next item of a live stream, failing the test instead of hanging."""
    return await asyncio.wait_for(anext(stream), DELIVERY_TIMEOUT)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncIterator[Database]:
    db = Database(str(tmp_path / "expenses.db"))
    await db.create_tables()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def repository(database: Database) -> ExpenseRepository:
    return ExpenseRepository(database)
