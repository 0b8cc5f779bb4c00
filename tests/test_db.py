from __future__ import annotations

import pytest

from db import Database, PersistenceError
from models import CategoryTotal, Expense
from tests.conftest import millis, next_delivery


@pytest.mark.asyncio
async def test_insert_then_get_by_id_returns_equal_record(database: Database):
    expense = Expense(amount=12.5, category="Shopping", date=millis(2024, 3, 2), note="socks")

    expense_id = await database.insert_expense(expense)
    stored = await database.get_expense_by_id(expense_id)

    assert expense_id > 0
    assert stored == Expense(
        id=expense_id, amount=12.5, category="Shopping", date=millis(2024, 3, 2), note="socks"
    )


@pytest.mark.asyncio
async def test_ids_are_assigned_in_increasing_order(database: Database):
    first = await database.insert_expense(Expense(amount=1.0, category="Other", date=1))
    second = await database.insert_expense(Expense(amount=2.0, category="Other", date=2))

    assert second > first


@pytest.mark.asyncio
async def test_insert_with_existing_id_replaces_row(database: Database):
    expense_id = await database.insert_expense(Expense(amount=10.0, category="Other", date=5))

    same_id = await database.insert_expense(
        Expense(id=expense_id, amount=99.0, category="Education", date=5, note="fixed")
    )

    assert same_id == expense_id
    stored = await database.get_expense_by_id(expense_id)
    assert stored.amount == 99.0
    assert stored.category == "Education"
    stream = database.stream_all_expenses()
    assert len(await next_delivery(stream)) == 1
    await stream.aclose()


@pytest.mark.asyncio
async def test_get_by_unknown_id_returns_none(database: Database):
    assert await database.get_expense_by_id(12345) is None


@pytest.mark.asyncio
async def test_stream_all_orders_newest_first(database: Database):
    for day in (3, 20, 11):
        await database.insert_expense(Expense(amount=float(day), category="Other", date=millis(2024, 3, day)))

    stream = database.stream_all_expenses()
    expenses = await next_delivery(stream)
    await stream.aclose()

    assert [expense.date for expense in expenses] == [
        millis(2024, 3, 20),
        millis(2024, 3, 11),
        millis(2024, 3, 3),
    ]


@pytest.mark.asyncio
async def test_stream_all_redelivers_after_insert_and_delete(database: Database):
    stream = database.stream_all_expenses()
    assert await next_delivery(stream) == []

    expense_id = await database.insert_expense(Expense(amount=7.0, category="Other", date=100))
    after_insert = await next_delivery(stream)
    assert [expense.id for expense in after_insert] == [expense_id]

    deleted = await database.delete_expense(after_insert[0])
    after_delete = await next_delivery(stream)
    await stream.aclose()

    assert deleted == 1
    assert after_delete == []
    # Deliveries made before the delete are snapshots and keep the record
    assert [expense.id for expense in after_insert] == [expense_id]


@pytest.mark.asyncio
async def test_every_open_stream_sees_a_mutation(database: Database):
    first = database.stream_all_expenses()
    second = database.stream_category_totals()
    await next_delivery(first)
    await next_delivery(second)

    await database.insert_expense(Expense(amount=4.0, category="Shopping", date=1))

    assert len(await next_delivery(first)) == 1
    assert await next_delivery(second) == [CategoryTotal(category="Shopping", total=4.0)]
    await first.aclose()
    await second.aclose()


@pytest.mark.asyncio
async def test_delete_with_stale_copy_deletes_nothing(database: Database):
    expense_id = await database.insert_expense(Expense(amount=10.0, category="Other", date=5, note="a"))
    stale = Expense(id=expense_id, amount=10.0, category="Other", date=5, note="b")

    deleted = await database.delete_expense(stale)

    assert deleted == 0
    assert await database.get_expense_by_id(expense_id) is not None


@pytest.mark.asyncio
async def test_delete_matches_rows_without_note(database: Database):
    expense_id = await database.insert_expense(Expense(amount=3.0, category="Other", date=9))

    deleted = await database.delete_expense(Expense(id=expense_id, amount=3.0, category="Other", date=9))

    assert deleted == 1
    assert await database.get_expense_by_id(expense_id) is None


@pytest.mark.asyncio
async def test_date_range_includes_start_and_excludes_end(database: Database):
    start = millis(2024, 1, 1)
    end = millis(2024, 2, 1)
    await database.insert_expense(Expense(amount=1.0, category="Other", date=start))
    await database.insert_expense(Expense(amount=2.0, category="Other", date=end - 1))
    await database.insert_expense(Expense(amount=4.0, category="Other", date=end))
    await database.insert_expense(Expense(amount=8.0, category="Other", date=start - 1))

    stream = database.stream_expenses_by_date_range(start, end)
    expenses = await next_delivery(stream)
    await stream.aclose()

    assert sorted(expense.amount for expense in expenses) == [1.0, 2.0]


@pytest.mark.asyncio
async def test_category_totals_follow_inserts_and_deletes(database: Database):
    stream = database.stream_category_totals()
    assert await next_delivery(stream) == []

    await database.insert_expense(Expense(amount=50.0, category="Food & Dining", date=1))
    await next_delivery(stream)
    food_id = await database.insert_expense(Expense(amount=25.5, category="Food & Dining", date=2))
    await next_delivery(stream)
    await database.insert_expense(Expense(amount=30.0, category="Custom label", date=3))
    totals = await next_delivery(stream)

    assert totals == [
        CategoryTotal(category="Custom label", total=30.0),
        CategoryTotal(category="Food & Dining", total=75.5),
    ]

    await database.delete_expense(Expense(id=food_id, amount=25.5, category="Food & Dining", date=2))
    totals = await next_delivery(stream)
    await stream.aclose()

    assert totals == [
        CategoryTotal(category="Custom label", total=30.0),
        CategoryTotal(category="Food & Dining", total=50.0),
    ]


@pytest.mark.asyncio
async def test_monthly_total_is_none_when_no_rows_match(database: Database):
    await database.insert_expense(Expense(amount=10.0, category="Other", date=millis(2024, 2, 10)))

    stream = database.stream_monthly_total(millis(2024, 3, 1), millis(2024, 4, 1))
    assert await next_delivery(stream) is None

    await database.insert_expense(Expense(amount=10.0, category="Other", date=millis(2024, 3, 10)))
    await database.insert_expense(Expense(amount=5.0, category="Other", date=millis(2024, 3, 31)))
    total = None
    while total != 15.0:
        total = await next_delivery(stream)
    await stream.aclose()

    assert total == 15.0


@pytest.mark.asyncio
async def test_store_failures_raise_persistence_error(database: Database):
    async with database.transaction() as cursor:
        await cursor.execute("DROP TABLE expenses")

    with pytest.raises(PersistenceError) as exc_info:
        await database.insert_expense(Expense(amount=1.0, category="Other", date=1))

    assert "insert expense" in str(exc_info.value)
    assert exc_info.value.original_error is not None


@pytest.mark.asyncio
async def test_create_tables_is_idempotent(database: Database):
    await database.insert_expense(Expense(amount=1.0, category="Other", date=1))

    await database.create_tables()

    stream = database.stream_all_expenses()
    assert len(await next_delivery(stream)) == 1
    await stream.aclose()


@pytest.mark.asyncio
async def test_operations_after_close_raise(tmp_path):
    db = Database(str(tmp_path / "closed.db"))
    await db.create_tables()
    await db.close()

    with pytest.raises(PersistenceError, match="Database is closed"):
        await db.insert_expense(Expense(amount=1.0, category="Other", date=1))
    with pytest.raises(PersistenceError, match="Database is closed"):
        await next_delivery(db.stream_all_expenses())
    assert db._connection_pool == []
