"""Single access point for expense data used by the view model."""

from collections.abc import AsyncIterator

from db import Database
from models import Expense
from utils.logging import logger


class ExpenseRepository:
    """Forwards to the Database, reshaping category totals into a mapping."""

    def __init__(self, database: Database):
        self._database = database

    def get_all_expenses(self) -> AsyncIterator[list[Expense]]:
        return self._database.stream_all_expenses()

    def get_expenses_by_month(self, start_of_month: int, end_of_month: int) -> AsyncIterator[list[Expense]]:
        return self._database.stream_expenses_by_date_range(start_of_month, end_of_month)

    async def get_category_totals(self) -> AsyncIterator[dict[str, float]]:
        """Live mapping of category -> summed amount."""
        stream = self._database.stream_category_totals()
        try:
            async for totals in stream:
                mapping = {row.category: row.total for row in totals}
                logger.debug(f"Category totals delivered for {len(mapping)} categories")
                yield mapping
        finally:
            await stream.aclose()

    def get_monthly_total(self, start_of_month: int, end_of_month: int) -> AsyncIterator[float | None]:
        return self._database.stream_monthly_total(start_of_month, end_of_month)

    async def insert_expense(self, expense: Expense) -> int:
        return await self._database.insert_expense(expense)

    async def delete_expense(self, expense: Expense) -> int:
        return await self._database.delete_expense(expense)

    async def get_expense_by_id(self, expense_id: int) -> Expense | None:
        return await self._database.get_expense_by_id(expense_id)
